import calendar
import logging
from datetime import date, datetime
from io import BytesIO

import pandas as pd
from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from licensing.custom_permissions import IsGroupExist, IsInAnalytics2Group, IsInAnalytics3Group, user_group_names
from licensing.models import (ApplicantDetail, ApplicantDocuments, ApplicantFee, ApplicationAssignment,
                              ApplicationSubmitted, CompetitionRegistration, District, PSIDTracking)
from licensing.models_choices import FEE_VERIFICATION_DOCUMENT, REG_TYPE_ORDER
from licensing.serializers import ApplicantDetailSerializer
from licensing.services.payments import payment_status

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def xlsx_response(content, filename):
    response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def workbook_response(wb, filename):
    buffer = BytesIO()
    wb.save(buffer)
    return xlsx_response(buffer.getvalue(), filename)


def style_header_row(ws, row_index, fill_color=None, min_width=20):
    fill = PatternFill(start_color=fill_color, end_color=fill_color, fill_type='solid') if fill_color else None
    for col_index, cell in enumerate(ws[row_index], start=1):
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal='center', vertical='center')
        if fill:
            cell.fill = fill
        ws.column_dimensions[get_column_letter(col_index)].width = max(len(str(cell.value or '')) + 5, min_width)


def beautify_header(header):
    return header.replace('district__district_name', 'District Name').replace('_', ' ').title()


def excel_value(value):
    if isinstance(value, (list, tuple)):
        return ", ".join(map(str, value))
    if isinstance(value, dict):
        return ", ".join(f"{k}: {v}" for k, v in value.items())
    if value is None:
        return ""
    if isinstance(value, datetime) and timezone.is_aware(value):
        return timezone.localtime(value).replace(tzinfo=None)
    return value


def table_pdf_response(title, headers, rows, filename):
    """A landscape A4 PDF with a title and one table, as an attachment."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), leftMargin=20, rightMargin=20,
                            topMargin=30, bottomMargin=30)
    styles = getSampleStyleSheet()
    cell_style = styles['BodyText']
    cell_style.fontSize = 7
    cell_style.leading = 9

    data = [[Paragraph(f"<b>{header}</b>", cell_style) for header in headers]]
    for row in rows:
        data.append([Paragraph(str(excel_value(value)), cell_style) for value in row])

    story = [Paragraph(title, styles['Title']), Spacer(1, 12)]
    if headers:
        table = Table(data, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#B7DEE8')),
            ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]))
        story.append(table)
    else:
        story.append(Paragraph("No records found.", styles['Normal']))
    doc.build(story)

    response = HttpResponse(buffer.getvalue(), content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def format_fee_sheet(sheet, title_text):
    """Merged title row over A:D, money columns, and a bold total row."""
    sheet.insert_rows(1)
    sheet["A1"] = title_text
    sheet.merge_cells("A1:D1")
    sheet["A1"].font = Font(bold=True)
    sheet["A1"].alignment = Alignment(horizontal='center')

    for col_letter in ['B', 'C', 'D']:
        for row in range(2, sheet.max_row + 1):
            sheet[f"{col_letter}{row}"].number_format = '#,##0.00'

    for col_idx in range(1, 5):
        sheet.column_dimensions[get_column_letter(col_idx)].width = 20

    last_row_idx = sheet.max_row
    for col_idx in range(1, 5):
        sheet[f"{get_column_letter(col_idx)}{last_row_idx}"].font = Font(bold=True)


def submitted_fee_frame():
    """
    One row per fee of a submitted application whose business profile has
    a district: district, submission time, assigned group, amount, settled.
    """
    submitted_at = dict(ApplicationSubmitted.objects.values_list('applicant_id', 'created_at'))
    rows = []
    fees = ApplicantFee.objects.filter(
        applicant_id__in=submitted_at.keys(),
        applicant__businessprofile__district__isnull=False,
    ).values('applicant_id', 'fee_amount', 'is_settled', 'applicant__assigned_group',
             'applicant__businessprofile__district__district_name')
    for fee in fees:
        rows.append({
            'district_name': fee['applicant__businessprofile__district__district_name'],
            'submitted_at': timezone.localtime(submitted_at[fee['applicant_id']]).date(),
            'assigned_group': fee['applicant__assigned_group'],
            'fee_amount': float(fee['fee_amount']),
            'is_settled': fee['is_settled'],
        })
    return pd.DataFrame(rows, columns=['district_name', 'submitted_at', 'assigned_group', 'fee_amount', 'is_settled'])


def fee_totals(frame):
    if frame.empty:
        return 0.0, 0.0
    received = float(frame['fee_amount'].sum())
    verified = float(frame.loc[frame['is_settled'].astype(bool), 'fee_amount'].sum())
    return received, verified


def fee_by_district(frame):
    """Per-district submitted, verified and unverified fees followed by a Total row."""
    rows = []
    for district_name, group in frame.groupby('district_name', sort=True):
        received, verified = fee_totals(group)
        rows.append({'district_name': district_name, 'fee_submitted': received,
                     'fee_verified': verified, 'fee_unverified': received - verified})
    received, verified = fee_totals(frame)
    rows.append({'district_name': 'Total', 'fee_submitted': received,
                 'fee_verified': verified, 'fee_unverified': received - verified})
    return pd.DataFrame(rows, columns=['district_name', 'fee_submitted', 'fee_verified', 'fee_unverified'])


def summary_report_frame():
    """Submitted applications per district and category, every district listed."""
    counts = {}
    submitted = ApplicantDetail.objects.filter(submittedapplication__isnull=False).values_list(
        'businessprofile__district_id', 'registration_for')
    for district_id, registration_for in submitted:
        counts.setdefault(district_id, {}).setdefault(registration_for, 0)
        counts[district_id][registration_for] += 1

    rows = []
    for district in District.objects.order_by('district_name'):
        district_counts = counts.get(district.district_id, {})
        row = {'district_name': district.district_name}
        for category in REG_TYPE_ORDER:
            row[category.lower()] = district_counts.get(category, 0)
        row['total'] = sum(district_counts.values())
        rows.append(row)
    return pd.DataFrame(rows, columns=['district_name'] + [c.lower() for c in REG_TYPE_ORDER] + ['total'])


def do_report_frame():
    """Applications currently with a district officer and when they first reached the desk."""
    rows = []
    applicants = ApplicantDetail.objects.filter(assigned_group='DO', submittedapplication__isnull=False) \
        .select_related('submittedapplication').order_by('tracking_number')
    first_do = {}
    for applicant_id, created_at in ApplicationAssignment.objects.filter(
            assigned_group='DO', applicant__in=applicants).order_by('created_at').values_list(
            'applicant_id', 'created_at'):
        first_do.setdefault(applicant_id, created_at)

    for applicant in applicants:
        rows.append({
            'district': (applicant.tracking_number or '')[:3],
            'tracking_number': applicant.tracking_number,
            'received_on': excel_value(applicant.submittedapplication.created_at),
            'do_assigned_at': excel_value(first_do.get(applicant.id)),
        })
    return pd.DataFrame(rows, columns=['district', 'tracking_number', 'received_on', 'do_assigned_at'])


def do_summary_frame():
    """
    Per district: applications that reached the DO desk, those forwarded on
    to LSM2 and those sent back to LSM after the DO assignment.
    """
    assignments = ApplicationAssignment.objects.filter(
        assigned_group__in=['DO', 'LSM2', 'LSM'],
        applicant__submittedapplication__isnull=False,
    ).values('id', 'applicant_id', 'assigned_group', 'applicant__businessprofile__district__short_name')

    by_applicant = {}
    for assignment in assignments:
        by_applicant.setdefault(assignment['applicant_id'], []).append(assignment)

    summary = {}
    for applicant_assignments in by_applicant.values():
        do_ids = [a['id'] for a in applicant_assignments if a['assigned_group'] == 'DO']
        if not do_ids:
            continue
        short_name = applicant_assignments[0]['applicant__businessprofile__district__short_name']
        row = summary.setdefault(short_name, {'in': 0, 'forward': 0, 'backward': 0})
        row['in'] += 1
        if any(a['assigned_group'] == 'LSM2' for a in applicant_assignments):
            row['forward'] += 1
        if any(a['assigned_group'] == 'LSM' and a['id'] > min(do_ids) for a in applicant_assignments):
            row['backward'] += 1

    rows = []
    for short_name in sorted(summary, key=lambda name: name or ''):
        row = summary[short_name]
        rows.append({
            'district_short_name': short_name,
            'count_do_applications_in': row['in'],
            'count_do_applications_out_forward': row['forward'],
            'count_do_applications_out_backward': row['backward'],
            'count_do_applications_out_total': row['forward'] + row['backward'],
        })
    return pd.DataFrame(rows, columns=['district_short_name', 'count_do_applications_in',
                                       'count_do_applications_out_forward', 'count_do_applications_out_backward',
                                       'count_do_applications_out_total'])


def fee_report_frame(frame):
    """Fees per district and submission date, with a district rollup row after each district."""
    rows = []
    for district_name, group in frame.groupby('district_name', sort=True):
        for submitted_on, day in group.groupby('submitted_at', sort=True):
            received, verified = fee_totals(day)
            rows.append({'district_name': district_name, 'created_at': submitted_on,
                         'fee_generated_submitted': received, 'fee_verified': verified})
        received, verified = fee_totals(group)
        rows.append({'district_name': district_name, 'created_at': None,
                     'fee_generated_submitted': received, 'fee_verified': verified})
    return pd.DataFrame(rows, columns=['district_name', 'created_at', 'fee_generated_submitted', 'fee_verified'])


class ReportAPIView(APIView):
    permission_classes = [IsAuthenticated, IsInAnalytics2Group]

    def get(self, request):
        sheets = [
            ('Summary Report', summary_report_frame()),
            ('DO Report', do_report_frame()),
            ('DO Application Summary Report', do_summary_frame()),
        ]
        include_fees = 'Analytics3' in user_group_names(request.user)

        buffer = BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            for sheet_name, frame in sheets:
                frame.to_excel(writer, index=False, sheet_name=sheet_name)

            if include_fees:
                fees = submitted_fee_frame()
                fee_report_frame(fees).to_excel(writer, index=False, sheet_name='Fee Report')

                first_window = fees[fees['submitted_at'] < date(2025, 1, 1)]
                second_window = fees[(fees['submitted_at'] >= date(2025, 1, 1)) &
                                     (fees['submitted_at'] <= date(2025, 1, 8))]

                fee_by_district(first_window).to_excel(writer, index=False, sheet_name='Fee Daily 1')
                format_fee_sheet(writer.book['Fee Daily 1'], "18.12.24 to 31.12.25")

                fee_by_district(second_window).to_excel(writer, index=False, sheet_name='Fee Daily 2')
                format_fee_sheet(writer.book['Fee Daily 2'], "01.01.25 to 08.01.25")

        logger.info("Report workbook generated for %s (fee sheets: %s)", request.user.username, include_fees)
        return xlsx_response(buffer.getvalue(), "report.xlsx")


def generate_cutoff_dates(today=None):
    """Fixed early cut-offs, then every month end from February 2025, ending today."""
    today = today or timezone.localdate()
    cutoff_dates = ['2024-12-31', '2025-01-08', '2025-01-31']

    year, month = 2025, 2
    while (year, month) <= (today.year, today.month):
        if year == today.year and month == today.month:
            last_day = today.day
        else:
            last_day = calendar.monthrange(year, month)[1]
        cutoff_dates.append(f"{year}-{month:02d}-{last_day:02d}")

        if month == 12:
            month = 1
            year += 1
        else:
            month += 1

    return cutoff_dates


class ReportFeeAPIView(APIView):
    permission_classes = [IsAuthenticated, IsInAnalytics3Group]

    def get(self, request):
        """Fees received and verified between consecutive cut-off dates."""
        fees = submitted_fee_frame()
        fees = fees[fees['assigned_group'] != 'APPLICANT']

        results = []
        previous_cutoff = None
        for cutoff in generate_cutoff_dates():
            cutoff_date = datetime.strptime(cutoff, '%Y-%m-%d').date()
            window = fees[fees['submitted_at'] <= cutoff_date]
            if previous_cutoff is not None:
                window = window[window['submitted_at'] > previous_cutoff]
            received, verified = fee_totals(window)
            results.append({
                "till": cutoff,
                "fee_received": received,
                "fee_verified": verified,
                "fee_unverified": received - verified,
            })
            previous_cutoff = cutoff_date

        return Response(results)


COLUMN_GROUPS = {
    "Applicant Information": ["tracking_number", "first_name", "last_name", "gender", "cnic", "email", "mobile_no",
                              "application_status"],
    "Business Information": ["businessprofile.business_name", "businessprofile.entity_type",
                             "businessprofile.district_name", "businessprofile.tehsil_name",
                             "businessprofile.city_town_village", "businessprofile.postal_address"],
    "Misc. Details": ["registration_for", "has_identity_document", "has_fee_challan", "assigned_group"],
    "Producer Details": ["producer.tracking_number", "producer.registration_required_for",
                         "producer.number_of_machines", "producer.total_capacity_value", "producer.date_of_setting_up",
                         "producer.total_waste_generated_value", "producer.has_waste_storage_capacity",
                         "producer.waste_disposal_provision"],
    "Stockist/Distributor/Supplier Details": ["consumer.registration_required_for", "consumer.consumption",
                                              "consumer.provision_waste_disposal_bins",
                                              "consumer.no_of_waste_disposable_bins",
                                              "consumer.segregated_plastics_handed_over_to_registered_recyclers"],
    "Collector Details": ["collector.registration_required_for", "collector.selected_categories",
                          "collector.total_capacity_value", "collector.number_of_vehicles",
                          "collector.number_of_persons"],
    "Recycler Details": ["recycler.selected_categories", "recycler.plastic_waste_acquired_through",
                         "recycler.has_adequate_pollution_control_systems", "recycler.pollution_control_details"],
    "Financial Details": ["total_fee_amount", "verified_fee_amount", "psid_tracking.consumer_number",
                          "psid_tracking.payment_status"],
    "Manual Fields": ["manual_fields.latitude", "manual_fields.longitude", "manual_fields.list_of_products",
                      "manual_fields.list_of_by_products", "manual_fields.raw_material_imported",
                      "manual_fields.seller_name_if_raw_material_bought", "manual_fields.self_import_details",
                      "manual_fields.raw_material_utilized", "manual_fields.compliance_thickness_75",
                      "manual_fields.valid_consent_permit_building_bylaws", "manual_fields.stockist_distributor_list",
                      "manual_fields.procurement_per_day", "manual_fields.no_of_workers",
                      "manual_fields.labor_dept_registration_status",
                      "manual_fields.occupational_safety_and_health_facilities",
                      "manual_fields.adverse_environmental_impacts"],
}

GROUP_COLORS = {
    "Applicant Information": "FFA500",
    "Business Information": "009000",
    "Misc. Details": "0000FF",
    "Producer Details": "FF4500",
    "Stockist/Distributor/Supplier Details": "1E90FF",
    "Recycler Details": "32CD32",
    "Collector Details": "FFD700",
    "Financial Details": "8A2BE2",
    "Manual Fields": "A9A9A9",
}

CATEGORY_GROUPS = {
    "Producer Details": "Producer",
    "Stockist/Distributor/Supplier Details": "Consumer",
    "Collector Details": "Collector",
    "Recycler Details": "Recycler",
}


def nested_value(data, path):
    """Follows a dotted path through nested dicts; a list of dicts yields the values joined."""
    value = data
    for key in path.split("."):
        if isinstance(value, list):
            value = ", ".join(str(item.get(key, "")) for item in value if isinstance(item, dict))
        elif isinstance(value, dict):
            value = value.get(key, "")
        else:
            return ""
    return value


class ExportApplicantDetailsToExcelAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        applicant_ids = request.data.get("applicant_ids") or []
        if not applicant_ids:
            return HttpResponse("No applicant IDs provided.", status=400)

        applicants = ApplicantDetail.objects.filter(id__in=applicant_ids)
        data = ApplicantDetailSerializer(applicants, many=True, context={'request': request}).data

        wb = Workbook()
        ws = wb.active
        ws.title = "Applicant Details"

        ws.merge_cells("A1:N1")
        ws["A1"] = "Plastic Management Information System - Applicant Details"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A1"].alignment = Alignment(horizontal="center")

        ws.merge_cells("A2:N2")
        ws["A2"] = f"Exported on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        ws["A2"].font = Font(bold=True, size=12)
        ws["A2"].alignment = Alignment(horizontal="center")

        headers = [column for columns in COLUMN_GROUPS.values() for column in columns]

        col_start = 1
        for group, columns in COLUMN_GROUPS.items():
            col_end = col_start + len(columns) - 1
            ws.merge_cells(start_row=3, start_column=col_start, end_row=3, end_column=col_end)
            group_cell = ws.cell(row=3, column=col_start)
            group_cell.value = group
            group_cell.font = Font(bold=True)
            group_cell.alignment = Alignment(horizontal="center")
            color = GROUP_COLORS.get(group, "FFFFFF")
            group_cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
            col_start = col_end + 1

        for col_num, column_title in enumerate(headers, 1):
            cell = ws.cell(row=4, column=col_num)
            cell.value = column_title
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center")
            ws.column_dimensions[get_column_letter(col_num)].width = 20

        for row_num, applicant in enumerate(data, 5):
            col_num = 1
            registration_for = applicant.get("registration_for")
            for group, columns in COLUMN_GROUPS.items():
                for column in columns:
                    value = nested_value(applicant, column)
                    if group in CATEGORY_GROUPS and CATEGORY_GROUPS[group] != registration_for:
                        value = ""
                    ws.cell(row=row_num, column=col_num, value=excel_value(value))
                    col_num += 1

        return workbook_response(wb, f"Applicant_Details_{datetime.now():%Y%m%d_%H%M%S}.xlsx")


class ApplicantFeeReportExcel(APIView):
    """
    Paid PSIDs of applications sitting with LSM, DO or LSM2 that have no
    treasury fee verification document yet.
    """
    permission_classes = [IsAuthenticated, IsInAnalytics2Group]

    def get(self, request):
        verified_ids = ApplicantDocuments.objects.filter(
            document_description=FEE_VERIFICATION_DOCUMENT).values_list('applicant_id', flat=True)
        psids = PSIDTracking.objects.filter(
            payment_status='PAID',
            applicant__assigned_group__in=['LSM', 'DO', 'LSM2'],
            applicant__submittedapplication__isnull=False,
        ).exclude(applicant_id__in=verified_ids).select_related(
            'applicant', 'applicant__submittedapplication', 'applicant__businessprofile__district'
        ).order_by('paid_date', 'paid_time')

        rows = []
        for psid in psids:
            applicant = psid.applicant
            profile = getattr(applicant, 'businessprofile', None)
            fee = ApplicantFee.objects.filter(applicant=applicant).order_by('-id').values_list(
                'fee_amount', flat=True).first()
            rows.append({
                'id': applicant.id,
                'district_name': profile.district.district_name if profile and profile.district else None,
                'tracking_number': applicant.tracking_number,
                'first_name': applicant.first_name,
                'last_name': applicant.last_name,
                'business_name': profile.name if profile else None,
                'submission_date_time': excel_value(applicant.submittedapplication.created_at),
                'fee_submitted': float(fee) if fee is not None else None,
                'consumer_number_psid': psid.consumer_number,
                'bank_code': psid.bank_code,
                'paid_date': psid.paid_date,
                'paid_time': psid.paid_time,
                'amount_bifurcation': excel_value(psid.amount_bifurcation),
                'dept_transaction_id': psid.dept_transaction_id,
            })
        frame = pd.DataFrame(rows, columns=[
            'id', 'district_name', 'tracking_number', 'first_name', 'last_name', 'business_name',
            'submission_date_time', 'fee_submitted', 'consumer_number_psid', 'bank_code', 'paid_date',
            'paid_time', 'amount_bifurcation', 'dept_transaction_id'])

        buffer = BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            frame.to_excel(writer, index=False, sheet_name='Applicant Fee Report')
            worksheet = writer.sheets['Applicant Fee Report']
            for col_cells in worksheet.iter_cols(min_row=1, max_row=1):
                worksheet.column_dimensions[col_cells[0].column_letter].width = 25
                for cell in col_cells:
                    cell.font = Font(bold=True)

        return xlsx_response(buffer.getvalue(), "applicant_fee_report.xlsx")


def frame_workbook_response(frame, sheet_name, filename):
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        frame.to_excel(writer, index=False, sheet_name=sheet_name)
        style_header_row(writer.sheets[sheet_name], 1, fill_color='D9EAD3')
    return xlsx_response(buffer.getvalue(), filename)


class ExportApplicantsPaymentView(APIView):
    permission_classes = [IsAuthenticated, IsGroupExist]

    def get(self, request):
        applicants = ApplicantDetail.objects.exclude(application_status='Created').select_related(
            'businessprofile__district').order_by('id')
        district_id = request.query_params.get('district_id')
        if district_id:
            applicants = applicants.filter(businessprofile__district_id=district_id)

        rows = []
        for applicant in applicants:
            status = payment_status(applicant)
            profile = getattr(applicant, 'businessprofile', None)
            rows.append({
                'Tracking Number': applicant.tracking_number,
                'Applicant': applicant.full_name,
                'Category': applicant.registration_for,
                'District': profile.district.district_name if profile and profile.district else None,
                'Total Due': status['total_due'],
                'Total Paid': status['total_paid'],
                'Remaining Balance': status['remaining_balance'],
                'Payment Status': status['status'],
                'Last Payment Date': excel_value(status['last_payment_date']),
            })
        frame = pd.DataFrame(rows, columns=['Tracking Number', 'Applicant', 'Category', 'District', 'Total Due',
                                            'Total Paid', 'Remaining Balance', 'Payment Status',
                                            'Last Payment Date'])
        return frame_workbook_response(frame, 'Applicants Payment', 'applicants_payment.xlsx')


class ExportPSIDTrackingView(APIView):
    permission_classes = [IsAuthenticated, IsGroupExist]

    def get(self, request):
        records = PSIDTracking.objects.select_related('applicant').order_by('-created_at')
        payment = request.query_params.get('payment_status')
        if payment:
            records = records.filter(payment_status=payment.upper())

        rows = [{
            'PSID': record.consumer_number,
            'Tracking Number': record.applicant.tracking_number if record.applicant else None,
            'Consumer Name': record.consumer_name,
            'CNIC': record.cnic,
            'Mobile': record.mobile_no,
            'Amount': float(record.amount_within_due_date),
            'Due Date': record.due_date,
            'Status': record.status,
            'Payment Status': record.payment_status,
            'Amount Paid': float(record.amount_paid) if record.amount_paid is not None else None,
            'Paid Date': record.paid_date,
            'Paid Time': record.paid_time,
            'Bank Code': record.bank_code,
            'Created At': excel_value(record.created_at),
        } for record in records]
        frame = pd.DataFrame(rows, columns=['PSID', 'Tracking Number', 'Consumer Name', 'CNIC', 'Mobile', 'Amount',
                                            'Due Date', 'Status', 'Payment Status', 'Amount Paid', 'Paid Date',
                                            'Paid Time', 'Bank Code', 'Created At'])
        return frame_workbook_response(frame, 'PSID Tracking', 'psid_tracking.xlsx')


class ExportCompetitionsView(APIView):
    permission_classes = [IsAuthenticated, IsGroupExist]

    def get(self, request):
        registrations = CompetitionRegistration.objects.order_by('-created_at').values(
            'registration_id', 'full_name', 'institute', 'grade', 'category', 'competition_type', 'mobile',
            'created_at')
        frame = pd.DataFrame([{k: excel_value(v) for k, v in row.items()} for row in registrations],
                             columns=['registration_id', 'full_name', 'institute', 'grade', 'category',
                                      'competition_type', 'mobile', 'created_at'])
        frame.columns = [beautify_header(column) for column in frame.columns]
        return frame_workbook_response(frame, 'Competitions', 'competition_registrations.xlsx')
