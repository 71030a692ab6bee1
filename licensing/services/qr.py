from io import BytesIO
from urllib.parse import parse_qs, urlparse

import cv2
import numpy as np
import qrcode
from django.core.files.base import ContentFile

CHALAN_VERIFICATION_URL = "https://plmis.epapunjab.pk"


def generate_qr_code(data, box_size=10, border=4):
    """PNG of ``data`` as a QR code, wrapped in a ContentFile."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return ContentFile(buffer.getvalue(), name="qrcode.png")


def chalan_verification_url(applicant):
    return f"{CHALAN_VERIFICATION_URL}?applicant_id={applicant.id}&tracking_hash={applicant.tracking_hash}"


def decode_qr_image(image_bytes):
    """Text of the first QR code found in an image, or None."""
    array = np.frombuffer(image_bytes, dtype=np.uint8)
    image = cv2.imdecode(array, cv2.IMREAD_COLOR)
    if image is None:
        return None

    detector = cv2.QRCodeDetector()
    data, points, _ = detector.detectAndDecode(image)
    if points is None or not data:
        return None
    return data


def parse_chalan_code(code):
    """
    ``(applicant_id, tracking_hash)`` from a chalan verification URL or a
    bare query string; missing parts come back as None.
    """
    if not code:
        return None, None
    query = urlparse(code).query if '?' in code or '://' in code else code
    params = parse_qs(query)
    applicant_id = params.get('applicant_id', [None])[0]
    tracking_hash = params.get('tracking_hash', [None])[0]
    return applicant_id, tracking_hash
