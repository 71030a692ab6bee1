"""
API tests for the application workflow: who sees which applications,
profile upserts, desk assignments, documents, public tracking, dashboards,
alerts and payments.
"""
import shutil
import tempfile
from decimal import Decimal

from django.contrib.auth.models import Group, User
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from licensing.models import Alert, ApplicantDetail, ApplicantDocuments, ApplicantFee, ApplicationAssignment, \
    ApplicationSubmitted, BusinessProfile, District, Division, License, Producer
from licensing.models_choices import FEE_VERIFICATION_DOCUMENT
from licensing.services.alerts import AlertService

SQUARE = {
    "type": "Polygon",
    "coordinates": [[[74.0, 31.0], [75.0, 31.0], [75.0, 32.0], [74.0, 32.0], [74.0, 31.0]]],
}


def grouped_user(username, *groups, **kwargs):
    user = User.objects.create_user(username=username, password='Secret@123', **kwargs)
    for name in groups:
        group, _ = Group.objects.get_or_create(name=name)
        user.groups.add(group)
    return user


class PortalAPITestCase(APITestCase):
    """Shared fixtures: one district, an applicant user and their application."""

    def setUp(self):
        cache.clear()
        self.division = Division.objects.create(division_name='Lahore', division_code='LHR')
        self.district = District.objects.create(
            district_id=1, division=self.division, district_name='Lahore', district_code='LHR',
            short_name='LHR', pitb_district_id=7, geom=SQUARE)
        self.applicant_user = grouped_user('ali.raza', 'APPLICANT')
        self.applicant = self.make_applicant(self.applicant_user)

    def make_applicant(self, user, **kwargs):
        fields = {
            'registration_for': 'Producer',
            'first_name': 'Ali',
            'last_name': 'Raza',
            'gender': 'Male',
            'cnic': '35202-1234567-1',
            'mobile_no': '3001234567',
            'created_by': user,
        }
        fields.update(kwargs)
        return ApplicantDetail.objects.create(**fields)

    def add_profile(self, applicant, **kwargs):
        return BusinessProfile.objects.create(applicant=applicant, district=self.district,
                                              business_name='Green Packaging', **kwargs)


class ApplicantScopeTest(PortalAPITestCase):

    def list_ids(self, user):
        self.client.force_authenticate(user=user)
        response = self.client.get('/api/pmc/applicant-detail/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        return {item["id"] for item in response.data}

    def test_applicant_sees_only_own_applications(self):
        other = self.make_applicant(User.objects.create_user(username='other', password='Secret@123'))
        ids = self.list_ids(self.applicant_user)
        self.assertIn(self.applicant.id, ids)
        self.assertNotIn(other.id, ids)

    def test_super_sees_everything(self):
        other = self.make_applicant(None)
        ids = self.list_ids(grouped_user('admin.super', 'Super'))
        self.assertEqual(ids, {self.applicant.id, other.id})

    def test_do_sees_district_applications_on_their_desk(self):
        self.add_profile(self.applicant)
        self.applicant.assigned_group = 'DO'
        self.applicant.save()
        elsewhere = self.make_applicant(None, assigned_group='DO')

        ids = self.list_ids(grouped_user('do.lhr', 'DO'))
        self.assertEqual(ids, {self.applicant.id})
        self.assertNotIn(elsewhere.id, ids)

    def test_lso_sees_their_round_robin_slot(self):
        self.applicant.application_status = 'Submitted'
        self.applicant.save()
        submitted = ApplicationSubmitted.objects.get(applicant=self.applicant)
        slot = submitted.id % 3 or 3
        other_slot = slot % 3 + 1

        self.assertEqual(self.list_ids(grouped_user(f'lso.{slot}', 'LSO')), {self.applicant.id})
        self.assertEqual(self.list_ids(grouped_user(f'lso.{other_slot}', 'LSO')), set())

    def test_submission_moves_application_to_lso(self):
        self.applicant.application_status = 'Submitted'
        self.applicant.save()
        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.assigned_group, 'LSO')
        self.assertTrue(ApplicationSubmitted.objects.filter(applicant=self.applicant).exists())

    def test_only_superusers_delete_applications(self):
        self.client.force_authenticate(user=self.applicant_user)
        response = self.client.delete(f'/api/pmc/applicant-detail/{self.applicant.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(ApplicantDetail.objects.filter(pk=self.applicant.id).exists())


class UpsertTest(PortalAPITestCase):

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.applicant_user)

    def test_producer_post_creates_then_updates(self):
        payload = {'applicant': self.applicant.id, 'number_of_machines': '4'}
        response = self.client.post('/api/pmc/producers/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        payload['number_of_machines'] = '12'
        response = self.client.post('/api/pmc/producers/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Producer.objects.filter(applicant=self.applicant).count(), 1)
        self.assertEqual(Producer.objects.get(applicant=self.applicant).number_of_machines, '12')

    def test_upsert_requires_applicant(self):
        response = self.client.post('/api/pmc/producers/', {'number_of_machines': '4'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_business_profile_assigns_tracking_number(self):
        response = self.client.post('/api/pmc/business-profiles/', {
            'applicant': self.applicant.id,
            'entity_type': 'Company',
            'business_name': 'Green Packaging',
            'district': self.district.district_id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.tracking_number, f"LHR-PRO-{self.applicant.id:03d}")


class TrackingTest(PortalAPITestCase):

    def test_missing_tracking_number(self):
        response = self.client.get('/api/pmc/track-application/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_tracking_number(self):
        response = self.client.get('/api/pmc/track-application/', {'tracking_number': 'XXX-PRO-999'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_reassigned_application_reports_remarks(self):
        self.add_profile(self.applicant)
        self.applicant.refresh_from_db()
        self.applicant.assigned_group = 'APPLICANT'
        self.applicant.save()
        ApplicationAssignment.objects.create(applicant=self.applicant, assigned_group='APPLICANT',
                                             remarks='Upload the NOC')

        response = self.client.get('/api/pmc/track-application/',
                                   {'tracking_number': self.applicant.tracking_number})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('Upload the NOC', response.data['message'])
        self.assertIn('helpline 1373', response.data['message'])


class DistrictLookupTest(PortalAPITestCase):

    def test_district_by_lat_lon(self):
        response = self.client.get('/api/pmc/DistrictByLatLon/', {'lat': '31.5', 'lon': '74.5'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['short_name'], 'LHR')

    def test_outside_every_district(self):
        response = self.client.get('/api/pmc/DistrictByLatLon/', {'lat': '25.0', 'lon': '67.0'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_coordinates(self):
        response = self.client.get('/api/pmc/DistrictByLatLon/', {'lat': 'north', 'lon': '74.5'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_public_district_list(self):
        response = self.client.get('/api/pmc/districts-list-public/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['short_name'] for row in response.data], ['LHR'])

    def test_public_district_boundaries(self):
        District.objects.create(district_id=2, division=self.division, district_name='Kasur', district_code='KSR',
                                short_name='KSR')
        response = self.client.get('/api/pmc/districts-public/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['type'], 'FeatureCollection')
        self.assertEqual(len(response.data['features']), 1)
        self.assertEqual(response.data['features'][0]['properties']['district_code'], 'LHR')


class StatisticsTest(PortalAPITestCase):

    def test_super_gets_submission_buckets(self):
        self.make_applicant(None, application_status='Fee Challan')
        self.client.force_authenticate(user=grouped_user('stats.super', 'Super'))
        response = self.client.get('/api/pmc/fetch-statistics-view-groups/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['All-Applications'], 2)
        self.assertEqual(response.data['Challan-Downloaded'], 1)
        self.assertIn('LSO1', response.data)

    def test_ungrouped_user_gets_nothing(self):
        self.client.force_authenticate(user=User.objects.create_user(username='plain', password='Secret@123'))
        response = self.client.get('/api/pmc/fetch-statistics-view-groups/')
        self.assertEqual(response.data, {})


class AlertsTest(PortalAPITestCase):

    def setUp(self):
        super().setUp()
        self.alert = AlertService().create_alert(
            applicant=self.applicant, alert_type='APPLICATION_STATUS', title='Application received',
            message='Your application has been received.')

    def test_in_app_alert_is_sent(self):
        self.alert.refresh_from_db()
        self.assertEqual(self.alert.status, 'SENT')

    def test_list_and_mark_read(self):
        self.client.force_authenticate(user=self.applicant_user)
        response = self.client.get('/api/pmc/alerts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['unread_count'], 1)

        response = self.client.put(f'/api/pmc/alerts/{self.alert.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Alert.objects.get(pk=self.alert.id).is_read)

    def test_other_users_cannot_read_alert(self):
        self.client.force_authenticate(user=User.objects.create_user(username='stranger', password='Secret@123'))
        response = self.client.get(f'/api/pmc/alerts/{self.alert.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_create_requires_staff(self):
        self.client.force_authenticate(user=self.applicant_user)
        payload = {'applicant_id': self.applicant.id, 'title': 'Inspection', 'message': 'Visit on Monday'}
        response = self.client.post('/api/pmc/admin/alerts/create/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=grouped_user('portal.admin', 'Admin'))
        response = self.client.post('/api/pmc/admin/alerts/create/', dict(payload, priority='HIGH'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Alert.objects.filter(applicant=self.applicant).count(), 2)

    def test_admin_create_rejects_unknown_channel(self):
        self.client.force_authenticate(user=grouped_user('portal.admin2', 'Admin'))
        response = self.client.post('/api/pmc/admin/alerts/create/', {
            'applicant_id': self.applicant.id, 'title': 'T', 'message': 'M', 'channels': ['PIGEON'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PaymentEndpointsTest(PortalAPITestCase):

    def setUp(self):
        super().setUp()
        ApplicantFee.objects.create(applicant=self.applicant, fee_amount=Decimal('50000'))

    def test_applicant_reads_own_status(self):
        self.client.force_authenticate(user=self.applicant_user)
        response = self.client.get(f'/api/pmc/payment-status/{self.applicant.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_due'], 50000.0)
        self.assertEqual(response.data['status'], 'PENDING')

    def test_applicant_cannot_record_payment(self):
        self.client.force_authenticate(user=User.objects.create_user(username='nogroup', password='Secret@123'))
        response = self.client.post(f'/api/pmc/payment-status/{self.applicant.id}/',
                                    {'amount': 50000, 'reference_number': 'BANK-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_records_payment_and_license_becomes_eligible(self):
        self.client.force_authenticate(user=grouped_user('lsm.officer', 'LSM'))
        response = self.client.post(f'/api/pmc/payment-status/{self.applicant.id}/',
                                    {'amount': 50000, 'reference_number': 'BANK-2'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_paid'])

        response = self.client.get(f'/api/pmc/license-eligibility/{self.applicant.id}/')
        self.assertTrue(response.data['eligible'])

        response = self.client.get(f'/api/pmc/payment-history/{self.applicant.id}/')
        methods = {entry['payment_method'] for entry in response.data['payments']}
        self.assertEqual(methods, {'PSID', 'CHALAN'})

    def test_invalid_amount(self):
        self.client.force_authenticate(user=grouped_user('lsm.officer2', 'LSM'))
        response = self.client.post(f'/api/pmc/payment-status/{self.applicant.id}/',
                                    {'amount': -5, 'reference_number': 'BANK-3'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_summary_by_district(self):
        self.add_profile(self.applicant)
        self.client.force_authenticate(user=grouped_user('dg.office', 'DG'))
        response = self.client.get('/api/pmc/payment-summary/', {'district_id': self.district.district_id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_applicants'], 1)
        self.assertEqual(response.data['total_payment_required'], 50000.0)

        response = self.client.get('/api/pmc/payment-summary/', {'district_id': 999})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class NotificationsAndSearchTest(PortalAPITestCase):

    def test_license_notice(self):
        self.applicant.assigned_group = 'Download License'
        self.applicant.save()
        self.client.force_authenticate(user=self.applicant_user)
        response = self.client.get('/api/pmc/notification/count/')
        self.assertEqual(response.data['count'], 1)

    def test_search_requires_query(self):
        self.client.force_authenticate(user=self.applicant_user)
        response = self.client.get('/api/pmc/search/query/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_stays_within_scope(self):
        self.add_profile(self.applicant)
        self.make_applicant(None, first_name='Alia')
        self.client.force_authenticate(user=self.applicant_user)
        response = self.client.get('/api/pmc/search/query/', {'query': 'ali'})
        self.assertEqual([item['id'] for item in response.data['Applications']], [self.applicant.id])

        response = self.client.get('/api/pmc/search/query/', {'query': 'green'})
        self.assertEqual(response.data['Businesses'][0]['business_name'], 'Green Packaging')


class CacheAdminTest(PortalAPITestCase):

    def test_staff_only(self):
        self.client.force_authenticate(user=self.applicant_user)
        response = self.client.get('/api/pmc/cache/health/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_health_and_clear(self):
        staff = User.objects.create_user(username='ops', password='Secret@123', is_staff=True)
        self.client.force_authenticate(user=staff)
        response = self.client.get('/api/pmc/cache/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['healthy'])

        response = self.client.post('/api/pmc/cache/clear/', {'pattern': 'statistics:*'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('cleared', response.data)



class AssignmentTest(PortalAPITestCase):

    def setUp(self):
        super().setUp()
        Producer.objects.create(applicant=self.applicant, number_of_machines='2')
        self.add_profile(self.applicant)
        self.client.force_authenticate(user=grouped_user('lso.1', 'LSO'))

    def assign(self, group, remarks='Forwarded'):
        return self.client.post('/api/pmc/application-assignment/', {
            'applicant': self.applicant.id, 'assigned_group': group, 'remarks': remarks}, format='json')

    def test_assignment_moves_the_application(self):
        response = self.assign('LSM')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created_by_group'], 'LSO')

        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.assigned_group, 'LSM')
        self.assertEqual(self.applicant.application_status, 'In Process')

        response = self.client.get('/api/pmc/application-assignment/by_applicant/',
                                   {'applicant_id': self.applicant.id})
        self.assertEqual([row['assigned_group'] for row in response.data], ['LSM'])

    def test_return_to_applicant_raises_document_alert(self):
        self.assign('APPLICANT', remarks='Upload the consent letter')
        alert = Alert.objects.get(applicant=self.applicant, alert_type='DOCUMENT_REQUIRED')
        self.assertEqual(alert.message, 'Upload the consent letter')

    def test_undefined_remarks_raise_no_alert(self):
        self.assign('APPLICANT', remarks='undefined')
        self.assertFalse(Alert.objects.filter(alert_type='DOCUMENT_REQUIRED').exists())

    def test_download_license_desk_issues_license(self):
        self.assign('Download License')
        license_obj = License.objects.get(applicant_id=self.applicant.id)
        self.assertEqual(license_obj.license_number, f'LHR-PRO-{self.applicant.id:03d}')
        self.assertTrue(Alert.objects.filter(applicant=self.applicant, alert_type='LICENSE_READY').exists())

    def test_applicant_is_required(self):
        response = self.client.post('/api/pmc/application-assignment/', {'assigned_group': 'LSM'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Applicant is required.')


UPLOADS = tempfile.mkdtemp(prefix='portal-documents-')


@override_settings(MEDIA_ROOT=UPLOADS)
class ApplicantDocumentsTest(PortalAPITestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(UPLOADS, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.applicant_user)

    def upload(self, description):
        document = SimpleUploadedFile('receipt.pdf', b'%PDF-1.4 treasury receipt', content_type='application/pdf')
        return self.client.post('/api/pmc/applicant-documents/', {
            'applicant': self.applicant.id, 'document_description': description, 'document': document,
        }, format='multipart')

    def test_treasury_verification_settles_oldest_fee(self):
        first = ApplicantFee.objects.create(applicant=self.applicant, fee_amount=Decimal('50000'))
        second = ApplicantFee.objects.create(applicant=self.applicant, fee_amount=Decimal('50000'))

        response = self.upload(FEE_VERIFICATION_DOCUMENT)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('/api/pmc/media/documents/', response.data['document'])

        first.refresh_from_db()
        second.refresh_from_db()
        self.assertTrue(first.is_settled)
        self.assertFalse(second.is_settled)

    def test_other_documents_leave_fees_alone(self):
        fee = ApplicantFee.objects.create(applicant=self.applicant, fee_amount=Decimal('50000'))
        self.upload('Consent Letter')
        fee.refresh_from_db()
        self.assertFalse(fee.is_settled)
        self.assertEqual(ApplicantDocuments.objects.filter(applicant=self.applicant).count(), 1)

    def test_missing_required_fields(self):
        response = self.client.post('/api/pmc/applicant-documents/', {
            'applicant': self.applicant.id, 'document_description': 'Consent Letter'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Missing required fields')
