import decimal
import os
import re
import uuid

from django.core.exceptions import ValidationError


def validate_latitude(value):
    # Exactly two digits before and six after the decimal point.
    value_str = format(value, '.6f')
    if not re.match(r'^\d{2}\.\d{6}$', value_str):
        raise ValidationError(
            "Latitude must be in the format XX.XXXXXX, with exactly 2 digits before and 6 digits after the decimal point.")

    if value < decimal.Decimal('20.000000') or value > decimal.Decimal('40.000000'):
        raise ValidationError("Latitude must be between 20.000000 and 40.000000.")


def validate_longitude(value):
    value_str = format(value, '.6f')
    if not re.match(r'^\d{2}\.\d{6}$', value_str):
        raise ValidationError(
            "Longitude must be in the format XX.XXXXXX, with exactly 2 digits before and 6 digits after the decimal point.")

    if value < decimal.Decimal('60.000000') or value > decimal.Decimal('80.000000'):
        raise ValidationError("Longitude must be between 60.000000 and 80.000000.")


def uuid_filename(folder, filename):
    """
    Path under ``media/<folder>/`` for an upload, with a uuid4 prefix in
    front of the original name.
    """
    original_name, ext = os.path.splitext(filename)
    return os.path.join('media', folder, f"{uuid.uuid4()}_{original_name}{ext}")


def get_client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def get_original_host(request):
    """Scheme and host of the calling front end, from Origin or Referer."""
    origin = request.META.get('HTTP_ORIGIN', '')
    if not origin:
        referer = request.META.get('HTTP_REFERER', '')
        if referer:
            from urllib.parse import urlparse
            parsed_url = urlparse(referer)
            origin = f"{parsed_url.scheme}://{parsed_url.netloc}"
    return origin


def media_download_url(request, file_field):
    """
    Absolute URL of an uploaded file served through ``/api/pmc/media/...``.
    Public hosts are always addressed over https.
    """
    if not file_field:
        return None
    url = request.build_absolute_uri(f"/api/pmc/{file_field.name.lstrip('/')}/") if request else \
        f"/api/pmc/{file_field.name.lstrip('/')}/"
    if '.com' in url or '.pk' in url:
        url = url.replace('http://', 'https://')
    return url
