"""
Generated documents: bank chalan, receipt and license PDFs, chalan
verification and the Excel exports.
"""
from datetime import date
from decimal import Decimal

from django.contrib.auth.models import Group, User
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework import status
from rest_framework.test import APITestCase

from licensing.controllers.reports import XLSX_CONTENT_TYPE
from licensing.models import ApplicantDetail, ApplicantFee, License, Producer, PSIDTracking
from licensing.services.qr import chalan_verification_url, generate_qr_code


def pdf_body(response):
    return b''.join(response.streaming_content) if response.streaming else response.content


class DocumentTestCase(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='applicant', password='Secret@123')
        self.applicant = ApplicantDetail.objects.create(
            registration_for='Producer', first_name='Bilal', last_name='Khan', gender='Male',
            cnic='35202-1111111-1', mobile_no='3331112222', created_by=self.user)
        Producer.objects.create(applicant=self.applicant, number_of_machines='8')


class ChalanPDFTest(DocumentTestCase):

    def test_chalan_pdf_records_fee_and_status(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get('/api/pmc/chalan-pdf/', {'ApplicantId': self.applicant.id})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(pdf_body(response).startswith(b'%PDF'))

        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.application_status, 'Fee Challan')
        fee = ApplicantFee.objects.get(applicant=self.applicant)
        self.assertEqual(fee.fee_amount, Decimal('100000'))
        self.assertFalse(fee.is_settled)

    def test_chalan_requires_applicant_id(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get('/api/pmc/chalan-pdf/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ReceiptPDFTest(DocumentTestCase):

    def test_anonymous_receipt_with_tracking_hash(self):
        response = self.client.get('/api/pmc/receipt-pdf/', {
            'ApplicantId': self.applicant.id, 'TrackingHash': self.applicant.tracking_hash})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(pdf_body(response).startswith(b'%PDF'))

    def test_wrong_tracking_hash(self):
        response = self.client.get('/api/pmc/receipt-pdf/', {
            'ApplicantId': self.applicant.id, 'TrackingHash': 'not-the-hash'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class LicensePDFTest(DocumentTestCase):

    def setUp(self):
        super().setUp()
        self.license = License.objects.create(
            license_for='Producer', license_number='LHR-PRO-001', license_duration='3 Years',
            owner_name='Bilal Khan', business_name='Khan Polymers',
            types_of_plastics='Carry bags, Packaging except food, Plastic utensils',
            particulars='Number of Machines: 8', fee_amount=Decimal('100000'),
            address='12 Industrial Estate, Lahore', date_of_issue=date(2026, 10, 1),
            applicant_id=self.applicant.id)
        self.client.force_authenticate(user=self.user)

    def test_license_pdf_by_applicant(self):
        response = self.client.get('/api/pmc/generate-license-pdf/', {'applicant_id': self.applicant.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(pdf_body(response).startswith(b'%PDF'))

    def test_inactive_license(self):
        self.license.is_active = False
        self.license.save()
        response = self.client.get('/api/pmc/generate-license-pdf/', {'applicant_id': self.applicant.id})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_license_requires_identifier(self):
        response = self.client.get('/api/pmc/generate-license-pdf/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_applicant_sees_own_licenses(self):
        response = self.client.get('/api/pmc/license-by-user/')
        self.assertEqual([row['license_number'] for row in response.data], ['LHR-PRO-001'])

    def test_types_truncated_at_comma(self):
        self.license.types_of_plastics = ', '.join(['Single use plastic item'] * 5)
        truncated = self.license.types_of_plastics_truncated()
        self.assertLessEqual(len(truncated), License.TYPES_MAX_CHARACTERS)
        self.assertFalse(truncated.endswith(','))


class ChalanVerificationTest(DocumentTestCase):

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.user)

    def test_valid_code(self):
        response = self.client.get('/api/pmc/verify-chalan/', {'code': chalan_verification_url(self.applicant)})
        self.assertTrue(response.data['valid'])
        self.assertEqual(response.data['applicant_id'], self.applicant.id)

    def test_tampered_hash(self):
        code = f"https://plmis.epapunjab.pk?applicant_id={self.applicant.id}&tracking_hash=forged"
        response = self.client.get('/api/pmc/verify-chalan/', {'code': code})
        self.assertFalse(response.data['valid'])

    def test_uploaded_qr_image(self):
        image = generate_qr_code(chalan_verification_url(self.applicant))
        upload = SimpleUploadedFile('chalan.png', image.read(), content_type='image/png')
        response = self.client.post('/api/pmc/verify-chalan-qr/', {'chalan_image': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['valid'])

    def test_upload_without_file(self):
        response = self.client.post('/api/pmc/verify-chalan-qr/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ExportTest(DocumentTestCase):

    def setUp(self):
        super().setUp()
        self.applicant.application_status = 'Fee Challan'
        self.applicant.save()
        PSIDTracking.objects.create(
            applicant=self.applicant, dept_transaction_id='1', due_date=date(2026, 10, 15),
            expiry_date='2026-10-15T23:59:59Z', amount_within_due_date=Decimal('100000'),
            consumer_name='Bilal Khan', mobile_no='03331112222', cnic='3520211111111',
            consumer_number='PSID-1')
        staff = User.objects.create_user(username='dg.office', password='Secret@123')
        staff.groups.add(Group.objects.create(name='DG'))
        self.client.force_authenticate(user=staff)

    def test_exports_are_workbooks(self):
        for url in ('/api/pmc/export/applicants-payment/', '/api/pmc/export/psid-tracking/',
                    '/api/pmc/export/competitions/'):
            with self.subTest(url=url):
                response = self.client.get(url)
                self.assertEqual(response.status_code, status.HTTP_200_OK)
                self.assertEqual(response['Content-Type'], XLSX_CONTENT_TYPE)
                self.assertTrue(response.content.startswith(b'PK'))

    def test_exports_need_a_group(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get('/api/pmc/export/psid-tracking/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
