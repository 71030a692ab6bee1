import logging
from datetime import datetime
from io import BytesIO

from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from num2words import num2words
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from licensing.models import ApplicantDetail, BusinessProfile, PSIDTracking
from licensing.services.fees import compute_fee, get_or_create_unsettled_fee
from licensing.services.qr import chalan_verification_url, decode_qr_image, generate_qr_code, parse_chalan_code

logger = logging.getLogger(__name__)

CHALAN_COPIES = ('Bank Copy', 'PMC Copy', 'Applicant Copy')
NBP_CHARGES = 0


def qr_image_reader(data, box_size=10):
    return ImageReader(BytesIO(generate_qr_code(data, box_size=box_size).read()))


def draw_chalan_copy(c, x, top, width, copy_label, data, qr_image):
    margin = 12
    left = x + margin
    right = x + width - margin

    c.setFont("Helvetica-Bold", 11)
    c.drawCentredString(x + width / 2, top, "Environmental Protection Agency, Punjab")
    c.setFont("Helvetica", 9)
    c.drawCentredString(x + width / 2, top - 14, "Plastic Management Cell")
    c.setFont("Helvetica-Bold", 10)
    c.drawCentredString(x + width / 2, top - 30, f"Bank Chalan ({copy_label})")

    rows = [
        ("Date", data['application_date']),
        ("Tracking No.", data['license_code']),
        ("PSID", data['psid']),
        ("Applicant", data['applicant_name']),
        ("Business", data['business_name']),
        ("Head of Account", "C03855"),
        ("Fee", data['amount']),
        ("NBP Charges", f"Rs. {data['nbp_charges']}"),
        ("Total", data['amount_total']),
    ]
    y = top - 56
    for label, value in rows:
        c.setFont("Helvetica-Bold", 8)
        c.drawString(left, y, f"{label}:")
        c.setFont("Helvetica", 8)
        c.drawString(left + 72, y, str(value or "N/A")[:40])
        y -= 16

    c.setFont("Helvetica-Oblique", 8)
    words = data['amount_words']
    c.drawString(left, y - 4, "Amount in words:")
    for chunk_start in range(0, len(words), 52):
        y -= 12
        c.drawString(left, y - 4, words[chunk_start:chunk_start + 52])

    qr_size = 90
    c.drawImage(qr_image, x + (width - qr_size) / 2, y - 24 - qr_size, width=qr_size, height=qr_size)

    c.setFont("Helvetica", 7)
    c.drawString(left, 40, "Depositor's signature")
    c.drawRightString(right, 40, "Bank officer / stamp")
    c.line(left, 52, left + 90, 52)
    c.line(right - 90, 52, right, 52)


def render_chalan_pdf(data, qr_url):
    buffer = BytesIO()
    page_width, page_height = landscape(A4)
    c = canvas.Canvas(buffer, pagesize=(page_width, page_height))
    c.setTitle("Bank Chalan")

    qr_image = qr_image_reader(qr_url)
    copy_width = page_width / len(CHALAN_COPIES)
    for index, copy_label in enumerate(CHALAN_COPIES):
        x = index * copy_width
        draw_chalan_copy(c, x, page_height - 36, copy_width, copy_label, data, qr_image)
        if index:
            c.setDash(3, 3)
            c.line(x, 20, x, page_height - 20)
            c.setDash()

    c.showPage()
    c.save()
    buffer.seek(0)
    return buffer.getvalue()


class BankChalanPDFView(APIView):
    def get(self, request, *args, **kwargs):
        applicant_id = request.GET.get("ApplicantId")
        if not applicant_id:
            raise NotFound("ApplicantId parameter is required.")

        applicant = get_object_or_404(ApplicantDetail, id=applicant_id)
        business_profile = BusinessProfile.objects.filter(applicant=applicant).first()

        fee = compute_fee(applicant)
        get_or_create_unsettled_fee(applicant, fee)

        if applicant.application_status == 'Created':
            applicant.application_status = 'Fee Challan'
            applicant.save()

        psid = PSIDTracking.objects.filter(applicant=applicant).order_by('-created_at').values_list(
            'consumer_number', flat=True).first()

        amount_total = fee + NBP_CHARGES
        data = {
            'applicant_name': applicant.full_name,
            'application_date': datetime.now().strftime("%Y-%m-%d %H:%M"),
            'business_name': f"{business_profile.name or business_profile.business_name or ''} "
                             f"{applicant.tracking_number or ''}".strip() if business_profile else "N/A",
            'amount': f"Rs. {fee:,}" if fee else "N/A",
            'amount_total': f"Rs. {amount_total:,}" if amount_total else "N/A",
            'amount_words': f"{num2words(amount_total)} rupees only." if amount_total else "N/A",
            'license_code': applicant.tracking_number,
            'nbp_charges': NBP_CHARGES,
            'psid': psid,
        }

        pdf = render_chalan_pdf(data, chalan_verification_url(applicant))
        response = HttpResponse(pdf, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="Chalan-{applicant.pk}.pdf"'
        return response


class PingView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        return Response({'status': 'ok'}, status=status.HTTP_200_OK)


def verify_chalan_code(code):
    applicant_id, tracking_hash = parse_chalan_code(code)
    if not applicant_id or not tracking_hash:
        return None
    return ApplicantDetail.objects.filter(id=applicant_id, tracking_hash=tracking_hash).first()


def verification_response(applicant, applicant_id=None):
    if applicant is None:
        return Response({'valid': False, 'applicant_id': applicant_id, 'tracking_number': None},
                        status=status.HTTP_200_OK)
    return Response({'valid': True, 'applicant_id': applicant.pk, 'tracking_number': applicant.tracking_number},
                    status=status.HTTP_200_OK)


class VerifyChalanQRCodeView(APIView):
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, *args, **kwargs):
        uploaded_file = request.FILES.get('chalan_image') or request.FILES.get('file')
        if not uploaded_file:
            return Response({'error': 'No file uploaded.'}, status=status.HTTP_400_BAD_REQUEST)

        code = decode_qr_image(uploaded_file.read())
        if not code:
            return Response({'error': 'No QR code found in the image.'}, status=status.HTTP_400_BAD_REQUEST)

        applicant_id, _ = parse_chalan_code(code)
        return verification_response(verify_chalan_code(code), applicant_id)


class VerifyChalanView(APIView):
    def get(self, request, *args, **kwargs):
        code = request.GET.get('code')
        if not code:
            return Response({'error': 'code parameter is required.'}, status=status.HTTP_400_BAD_REQUEST)

        applicant_id, _ = parse_chalan_code(code)
        return verification_response(verify_chalan_code(code), applicant_id)
