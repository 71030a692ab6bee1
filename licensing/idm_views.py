import logging

from django.db.models import Count
from django.http import JsonResponse
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from licensing.models import District, EecClub
from licensing.services.cache import get_cache
from licensing.services.geo import feature, feature_collection
from licensing.utils import media_download_url

logger = logging.getLogger(__name__)

ALLOWED_GROUPS = {'Super', 'EEC', 'Admin', 'DEO', 'DG', 'DO', 'LSM', 'LSO', 'TL'}
CLUB_COUNTS_TTL = 3600


def user_has_permission(request):
    return request.user.is_authenticated and request.user.groups.filter(name__in=ALLOWED_GROUPS).exists()


def district_club_features():
    districts = District.objects.filter(geom__isnull=False).annotate(club_count=Count('eec_clubs'))
    return feature_collection(
        feature(district.geom, {
            "id": district.district_id,
            "name": district.short_name,
            "club_count": district.club_count,
        })
        for district in districts
    )


def districts_club_counts(request):
    geojson = get_cache().get_or_set('idm:districts_club_geojson', district_club_features, CLUB_COUNTS_TTL)
    return JsonResponse(geojson)


def club_features(request):
    show_sensitive_data = user_has_permission(request)
    clubs = EecClub.objects.filter(latitude__isnull=False, longitude__isnull=False)

    features = []
    for club in clubs:
        props = {
            "id": club.id,
            "emiscode": club.emiscode,
            "name": club.school_name,
            "address": club.address,
            "head_name": club.head_name,
            "district_id": club.district_id,
            "district": club.district_name,
        }
        if show_sensitive_data:
            props["head_mobile"] = club.head_mobile_no
            props["notification_path"] = media_download_url(request, club.notification_path)

        features.append(feature({
            "type": "Point",
            "coordinates": [club.longitude, club.latitude]
        }, props))

    return feature_collection(features)


def clubs_geojson_all(request):
    return JsonResponse(club_features(request))


class ClubGeoJSONViewSet(viewsets.ViewSet):
    permission_classes = [AllowAny]

    @action(detail=False, methods=['get'])
    def all(self, request):
        return Response(club_features(request))
