import logging
from datetime import datetime
from io import BytesIO

from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny
from rest_framework.views import APIView
from rest_framework_simplejwt.authentication import JWTAuthentication

from licensing.controllers.bank_chalan import qr_image_reader
from licensing.models import ApplicantDetail, BusinessProfile

logger = logging.getLogger(__name__)


def render_receipt_pdf(data, qr_url):
    buffer = BytesIO()
    page_width, page_height = A4
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle("Application Receipt")

    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(page_width / 2, page_height - 70, "Environmental Protection Agency, Punjab")
    c.setFont("Helvetica", 12)
    c.drawCentredString(page_width / 2, page_height - 90, "Plastic Management Cell")
    c.setFont("Helvetica-Bold", 14)
    c.drawCentredString(page_width / 2, page_height - 130, "Acknowledgement Receipt")

    rows = [
        ("Application No.", data['applicant_no']),
        ("Applicant Name", data['applicant_name']),
        ("Application Date", data['application_date']),
        ("Business Name", data['business_name']),
        ("Registration For", data['license_type']),
        ("Business Address", data['business_address']),
    ]
    y = page_height - 180
    for label, value in rows:
        c.setFont("Helvetica-Bold", 11)
        c.drawString(72, y, f"{label}:")
        c.setFont("Helvetica", 11)
        c.drawString(210, y, str(value or "N/A")[:60])
        y -= 24

    qr_size = 130
    c.drawImage(qr_image_reader(qr_url), (page_width - qr_size) / 2, y - 20 - qr_size,
                width=qr_size, height=qr_size)

    c.setFont("Helvetica-Oblique", 9)
    c.drawCentredString(page_width / 2, y - 40 - qr_size,
                        "Scan the code to verify this receipt. For further details, call helpline 1373.")
    c.showPage()
    c.save()
    buffer.seek(0)
    return buffer.getvalue()


class ApplicationReceiptPDFView(APIView):
    """
    Acknowledgement receipt of an application. Signed-in users get only
    their own applications; anonymous callers need the tracking hash.
    """
    authentication_classes = [JWTAuthentication]
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        applicant_id = request.GET.get("ApplicantId")
        tracking_hash = request.GET.get("TrackingHash")
        if not applicant_id:
            raise NotFound("ApplicantId parameter is required.")

        if request.user.is_authenticated:
            applicant = get_object_or_404(ApplicantDetail, id=applicant_id, created_by=request.user)
        else:
            if not tracking_hash:
                raise NotFound("No ApplicantDetail matches the given query.")
            applicant = get_object_or_404(ApplicantDetail, id=applicant_id, tracking_hash=tracking_hash)

        business_profile = BusinessProfile.objects.filter(applicant=applicant).first()

        url = request.build_absolute_uri(request.path)
        url = f"{url}?ApplicantId={applicant.pk}&TrackingHash={applicant.tracking_hash}"

        data = {
            'applicant_no': applicant.tracking_number,
            'applicant_name': applicant.full_name,
            'application_date': datetime.now().strftime("%d %B %Y, %I:%M %p"),
            'business_name': (business_profile.name or business_profile.business_name) if business_profile else "N/A",
            'license_type': applicant.registration_for or "N/A",
            'business_address': business_profile.postal_address if business_profile else "N/A",
        }

        pdf = render_receipt_pdf(data, url)
        response = HttpResponse(pdf, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="Receipt-{applicant_id}.pdf"'
        return response
