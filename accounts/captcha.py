import base64
import random
import string
from io import BytesIO

from django.conf import settings
from django.core.cache import cache
from django.utils.crypto import get_random_string
from PIL import Image, ImageDraw, ImageFont

CAPTCHA_TTL = 300
CAPTCHA_LENGTH = 5
CACHE_PREFIX = 'captcha:'


def render_captcha(text):
    img = Image.new('RGB', (150, 50), color=(255, 255, 255))
    font = ImageFont.load_default()
    d = ImageDraw.Draw(img)

    for _ in range(6):
        start = (random.randint(0, 150), random.randint(0, 50))
        end = (random.randint(0, 150), random.randint(0, 50))
        d.line([start, end], fill=(190, 190, 190), width=1)
    d.text((10, 18), ' '.join(text), font=font, fill=(0, 0, 0))

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode()


def issue_captcha():
    """Create a captcha and return ``(data_url, token)``; the answer is cached for 5 minutes."""
    captcha_text = get_random_string(length=CAPTCHA_LENGTH, allowed_chars=string.ascii_uppercase + string.digits)
    captcha_token = get_random_string(16)
    cache.set(CACHE_PREFIX + captcha_token, captcha_text, timeout=CAPTCHA_TTL)
    return f"data:image/png;base64,{render_captcha(captcha_text)}", captcha_token


def captcha_error(data):
    """
    Check the optional captcha fields of a login or registration payload.

    A payload without ``captcha_token`` passes unless CAPTCHA_REQUIRED is set.
    A token is single use.
    """
    token = data.get('captcha_token')
    if not token:
        return "Captcha is required." if getattr(settings, 'CAPTCHA_REQUIRED', False) else None

    expected = cache.get(CACHE_PREFIX + token)
    cache.delete(CACHE_PREFIX + token)
    answer = (data.get('captcha_input') or '').strip()
    if not expected or answer.upper() != expected.upper():
        return "Invalid captcha."
    return None
