import logging
import os
from io import BytesIO

from django.conf import settings
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from PyPDF2 import PdfReader, PdfWriter
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas
from rest_framework import permissions, status
from rest_framework.decorators import api_view
from rest_framework.response import Response
from rest_framework.views import APIView

from licensing.controllers.bank_chalan import qr_image_reader
from licensing.models import ApplicantDetail, BusinessProfile, License
from licensing.serializers import LicenseSerializer
from licensing.services.audit import log_access

logger = logging.getLogger(__name__)

ADDRESS_MAX_CHARACTERS = 66


def license_address(license_obj):
    """Address of the license followed by tehsil and district, when not already present."""
    district_name = ""
    tehsil_name = ""
    profile = BusinessProfile.objects.filter(applicant_id=license_obj.applicant_id).select_related(
        'district', 'tehsil').first()
    if profile:
        if profile.district:
            district_name = profile.district.district_name or ""
        if profile.tehsil:
            tehsil_name = profile.tehsil.tehsil_name or ""

    full_address = (license_obj.address or "").strip()
    if tehsil_name and not full_address.endswith(tehsil_name.strip()):
        full_address += f", {tehsil_name}"
    if district_name and tehsil_name.strip() != district_name.strip():
        full_address += f", {district_name}"
    return full_address


def split_address(full_address, max_length=ADDRESS_MAX_CHARACTERS):
    """
    Two certificate lines. The first ends at the last space inside
    ``max_length`` so a word is never cut unless it has no spaces at all.
    """
    if len(full_address) <= max_length:
        return full_address, ""

    head = full_address[:max_length]
    if head.endswith(" "):
        first = head.rstrip()
        return first, full_address[len(first) + 1:]

    space_index = head.rfind(" ")
    if space_index != -1:
        return head[:space_index], full_address[space_index + 1:]
    return head, full_address[max_length:]


def load_license_template():
    path = settings.LICENSE_TEMPLATE_PATH
    if not os.path.exists(path):
        logger.warning("License template %s not found, rendering on a plain page", path)
        return None
    with open(path, "rb") as f:
        return PdfReader(BytesIO(f.read()))


def render_license_pdf(license_obj, qr_url):
    template = load_license_template()
    if template is not None:
        first_page = template.pages[0]
        width = float(first_page.mediabox.width)
        height = float(first_page.mediabox.height) + 6
    else:
        width, height = landscape(A4)

    overlay_buffer = BytesIO()
    c = canvas.Canvas(overlay_buffer, pagesize=(width, height))

    if template is None:
        c.setFont("Times-Bold", 22)
        c.drawCentredString(width / 2, height - 110, "Plastic License Certificate")
        c.setFont("Times-Roman", 12)
        labels = ["License No.", "Duration", "Name", "Types of Plastics", "Address", ""]
        for index, label in enumerate(labels):
            if label:
                c.drawString(120, height - 294 - index * 26, f"{label}:")
        c.drawString(120, height - 464, "Date of Issue:")

    full_address1, full_address2 = split_address(license_address(license_obj))
    display_name = license_obj.owner_name if len(license_obj.business_name) < 10 else license_obj.business_name

    c.setFont("Times-Bold", 14)
    c.drawCentredString((width + 14) / 2, height - 190, license_obj.license_for_formatted())

    c.setFont("Times-Roman", 14)
    c.drawString(280, height - 294, license_obj.license_number)
    c.drawString(280, height - 320, license_obj.license_duration)
    c.drawString(280, height - 346, display_name[:ADDRESS_MAX_CHARACTERS])
    c.drawString(280, height - 372, license_obj.types_of_plastics_truncated())
    c.drawString(280, height - 396, full_address1)
    c.drawString(280, height - 423, full_address2)

    c.setFont("Times-Roman", 12)
    c.drawString(169 if template is not None else 210, height - 464, license_obj.formatted_date_of_issue())

    c.drawImage(qr_image_reader(qr_url), 690, height - 388, width=100, height=100)
    c.showPage()
    c.save()
    overlay_buffer.seek(0)

    if template is None:
        return overlay_buffer.getvalue()

    overlay_page = PdfReader(overlay_buffer).pages[0]
    writer = PdfWriter()
    for base_page in template.pages:
        base_page.merge_page(overlay_page)
        writer.add_page(base_page)

    final_buffer = BytesIO()
    writer.write(final_buffer)
    return final_buffer.getvalue()


def license_pdf_response(license_obj, qr_url):
    pdf = render_license_pdf(license_obj, qr_url)
    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = 'attachment; filename="license.pdf"'
    return response


class LicensePDFView(APIView):
    """
    Stamps the license fields and a verification QR code onto the license
    background PDF and returns the result.
    """
    permission_classes = []

    def get(self, request, *args, **kwargs):
        license_number = request.GET.get('license_number')
        date_of_issue = request.GET.get('date_of_issue')

        if not license_number:
            return HttpResponse("Missing license_number query parameter.", status=400)

        log_access(request, 'License', license_number)

        licenses = License.objects.filter(license_number=license_number, is_active=True)
        if date_of_issue:
            license_obj = licenses.filter(date_of_issue=date_of_issue).first()
            if not license_obj:
                return HttpResponse("No license found with the given license_number and date_of_issue.",
                                    status=404)
        else:
            license_obj = licenses.order_by('-date_of_issue').first()
            if not license_obj:
                return HttpResponse("No active license found with the given license_number.", status=404)

        return license_pdf_response(license_obj, request.build_absolute_uri())


@api_view(['GET'])
def generate_license_pdf(request):
    applicant_id = request.GET.get("applicant_id")
    tracking_number = request.GET.get("tracking_number")

    if applicant_id:
        applicant = get_object_or_404(ApplicantDetail, id=applicant_id)
    elif tracking_number:
        applicant = get_object_or_404(ApplicantDetail, tracking_number=tracking_number)
    else:
        return Response({"error": "Either 'applicant_id' or 'tracking_number' must be provided."},
                        status=status.HTTP_400_BAD_REQUEST)

    license_obj = License.objects.filter(applicant_id=applicant.pk, is_active=True).first()
    if license_obj is None:
        return Response({"error": "No active license found for this applicant."}, status=status.HTTP_404_NOT_FOUND)

    log_access(request, 'License', license_obj.license_number)
    qr_url = request.build_absolute_uri(
        f"/api/pmc/license-pdf/?license_number={license_obj.license_number}")
    return license_pdf_response(license_obj, qr_url)


class LicenseByUserView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, *args, **kwargs):
        user = request.user
        if user.groups.exists():
            licenses = License.objects.all()
        else:
            applicant_ids = ApplicantDetail.objects.filter(created_by=user).values_list('id', flat=True)
            licenses = License.objects.filter(applicant_id__in=applicant_ids)

        serializer = LicenseSerializer(licenses, many=True)
        return Response(serializer.data)
