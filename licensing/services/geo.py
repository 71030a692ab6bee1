"""
District geometry helpers.

Boundaries are kept as plain GeoJSON (``Polygon`` or ``MultiPolygon``) in a
JSON column so the portal runs on any database backend. Containment is
answered by GEOS through ``django.contrib.gis.geos``.
"""
from django.contrib.gis.geos import MultiPolygon, Point, Polygon

SRID = 4326


def to_geos(geometry):
    """GEOS geometry for a GeoJSON Polygon or MultiPolygon, else None."""
    if not geometry:
        return None

    geom_type = geometry.get('type')
    coordinates = geometry.get('coordinates') or []
    if geom_type == 'Polygon' and coordinates:
        return Polygon(*coordinates, srid=SRID)
    if geom_type == 'MultiPolygon' and coordinates:
        return MultiPolygon(*[Polygon(*rings) for rings in coordinates if rings], srid=SRID)
    return None


def geometry_contains(geometry, lat, lon):
    geos_geometry = to_geos(geometry)
    if geos_geometry is None:
        return False
    return geos_geometry.contains(Point(lon, lat, srid=SRID))


def feature(geometry, properties):
    return {
        "type": "Feature",
        "geometry": geometry,
        "properties": properties,
    }


def feature_collection(features):
    return {
        "type": "FeatureCollection",
        "features": list(features),
    }
