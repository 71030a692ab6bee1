"""
Tests for the licensing services: fees, payment status, geometry, QR codes
and the namespaced cache.
"""
from decimal import Decimal

from django.contrib.auth.models import User
from django.test import SimpleTestCase, TestCase

from licensing.models import ApplicantDetail, ApplicantFee, ApplicationSubmitted, BusinessProfile, District, \
    Division, Producer, PSIDTracking
from licensing.services.cache import CacheManager, LocalCacheBackend
from licensing.services.fees import compute_fee, get_or_create_unsettled_fee, producer_fee, settle_oldest_fee
from licensing.services.geo import feature, feature_collection, geometry_contains
from licensing.services.payments import is_eligible_for_license, payment_status, record_payment, total_due
from licensing.services.qr import chalan_verification_url, decode_qr_image, generate_qr_code, parse_chalan_code

SQUARE = {
    "type": "Polygon",
    "coordinates": [[[74.0, 31.0], [75.0, 31.0], [75.0, 32.0], [74.0, 32.0], [74.0, 31.0]]],
}


def make_applicant(user=None, registration_for='Producer', **kwargs):
    return ApplicantDetail.objects.create(
        registration_for=registration_for,
        first_name='Ali',
        last_name='Raza',
        gender='Male',
        cnic='35202-1234567-1',
        mobile_no='3001234567',
        created_by=user,
        **kwargs
    )


class ProducerFeeTest(SimpleTestCase):

    def test_machine_bands(self):
        self.assertEqual(producer_fee(3), 50000)
        self.assertEqual(producer_fee('5'), 50000)
        self.assertEqual(producer_fee(6), 100000)
        self.assertEqual(producer_fee(10), 100000)
        self.assertEqual(producer_fee(11), 300000)

    def test_unparseable_or_zero_machines_pay_nothing(self):
        self.assertEqual(producer_fee('many'), 0)
        self.assertEqual(producer_fee(None), 0)
        self.assertEqual(producer_fee(0), 0)


class ComputeFeeTest(TestCase):
    """Fee by category and entity type."""

    def setUp(self):
        self.user = User.objects.create_user(username='applicant1', password='Secret@123')

    def test_producer_pays_by_machine_count(self):
        applicant = make_applicant(self.user)
        Producer.objects.create(applicant=applicant, number_of_machines='7')
        self.assertEqual(compute_fee(applicant), 100000)

    def test_producer_without_machines_pays_nothing(self):
        applicant = make_applicant(self.user)
        self.assertEqual(compute_fee(applicant), 0)

    def test_consumer_company(self):
        applicant = make_applicant(self.user, registration_for='Consumer')
        BusinessProfile.objects.create(applicant=applicant, entity_type='Company', business_name='Acme')
        self.assertEqual(compute_fee(applicant), 200000)

    def test_collector_defaults_to_individual(self):
        applicant = make_applicant(self.user, registration_for='Collector')
        self.assertEqual(compute_fee(applicant), 500)

    def test_unknown_category(self):
        applicant = make_applicant(self.user, registration_for=None)
        self.assertEqual(compute_fee(applicant), 0)

    def test_unsettled_fee_is_reused(self):
        applicant = make_applicant(self.user, registration_for='Recycler')
        first = get_or_create_unsettled_fee(applicant)
        second = get_or_create_unsettled_fee(applicant)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(first.fee_amount, Decimal('25000'))

    def test_settle_oldest_fee(self):
        applicant = make_applicant(self.user, registration_for='Recycler')
        older = ApplicantFee.objects.create(applicant=applicant, fee_amount=Decimal('100'))
        ApplicantFee.objects.create(applicant=applicant, fee_amount=Decimal('200'))
        settled = settle_oldest_fee(applicant)
        self.assertEqual(settled.pk, older.pk)
        self.assertTrue(ApplicantFee.objects.get(pk=older.pk).is_settled)


class PaymentStatusTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='applicant2', password='Secret@123')
        self.applicant = make_applicant(self.user, registration_for='Collector')
        ApplicantFee.objects.create(applicant=self.applicant, fee_amount=Decimal('1000'))

    def test_unpaid_applicant_is_pending(self):
        status = payment_status(self.applicant)
        self.assertEqual(status['total_due'], 1000.0)
        self.assertEqual(status['total_paid'], 0.0)
        self.assertEqual(status['status'], 'PENDING')
        self.assertEqual(status['payment_percentage'], 0)
        self.assertFalse(status['is_paid'])

    def test_partial_payment(self):
        record_payment(self.applicant, 400, 'REF-1')
        status = payment_status(self.applicant)
        self.assertEqual(status['status'], 'PARTIAL')
        self.assertEqual(status['remaining_balance'], 600.0)
        self.assertEqual(status['payment_percentage'], 40)
        self.assertTrue(status['is_partially_paid'])

    def test_full_payment_moves_application_to_download_desk(self):
        status = record_payment(self.applicant, 1000, 'REF-2')
        self.assertTrue(status['is_paid'])
        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.assigned_group, 'Download License')
        self.assertEqual(self.applicant.application_status, 'Submitted')
        self.assertTrue(ApplicationSubmitted.objects.filter(applicant=self.applicant).exists())
        self.assertTrue(is_eligible_for_license(self.applicant)['eligible'])

    def test_overpayment_clamps_balance(self):
        record_payment(self.applicant, 1500, 'REF-3')
        status = payment_status(self.applicant)
        self.assertEqual(status['remaining_balance'], 0.0)
        self.assertEqual(status['payment_percentage'], 100)

    def test_invalid_payments_are_rejected(self):
        with self.assertRaises(ValueError):
            record_payment(self.applicant, 0, 'REF-4')
        with self.assertRaises(ValueError):
            record_payment(self.applicant, 100, '  ')
        record_payment(self.applicant, 100, 'REF-5')
        with self.assertRaises(ValueError):
            record_payment(self.applicant, 100, 'REF-5')

    def test_total_due_falls_back_to_computed_fee(self):
        applicant = make_applicant(self.user, registration_for='Collector')
        self.assertEqual(total_due(applicant), Decimal('500'))

    def test_unpaid_psid_does_not_count(self):
        PSIDTracking.objects.create(
            applicant=self.applicant, dept_transaction_id='1', due_date='2026-01-01',
            expiry_date='2026-01-01T23:59:59Z', amount_within_due_date=Decimal('1000'),
            consumer_name='Ali Raza', mobile_no='03001234567', cnic='3520212345671',
            consumer_number='PSID-1', payment_status='UNPAID',
        )
        self.assertEqual(payment_status(self.applicant)['total_paid'], 0.0)


class GeometryTest(SimpleTestCase):

    def test_point_inside_polygon(self):
        self.assertTrue(geometry_contains(SQUARE, 31.5, 74.5))

    def test_point_outside_polygon(self):
        self.assertFalse(geometry_contains(SQUARE, 33.0, 74.5))

    def test_multipolygon(self):
        multi = {"type": "MultiPolygon", "coordinates": [SQUARE["coordinates"]]}
        self.assertTrue(geometry_contains(multi, 31.5, 74.5))

    def test_point_in_hole_is_outside(self):
        hole = [[74.4, 31.4], [74.6, 31.4], [74.6, 31.6], [74.4, 31.6], [74.4, 31.4]]
        ring = {"type": "Polygon", "coordinates": SQUARE["coordinates"] + [hole]}
        self.assertFalse(geometry_contains(ring, 31.5, 74.5))
        self.assertTrue(geometry_contains(ring, 31.2, 74.2))

    def test_empty_geometry(self):
        self.assertFalse(geometry_contains(None, 31.5, 74.5))
        self.assertFalse(geometry_contains({"type": "Point", "coordinates": [74.5, 31.5]}, 31.5, 74.5))

    def test_feature_collection(self):
        collection = feature_collection([feature(SQUARE, {"name": "Lahore"})])
        self.assertEqual(collection["type"], "FeatureCollection")
        self.assertEqual(collection["features"][0]["properties"]["name"], "Lahore")


class DistrictLookupTest(TestCase):

    def setUp(self):
        division = Division.objects.create(division_name='Lahore', division_code='LHR')
        District.objects.create(district_id=1, division=division, district_name='Lahore',
                                district_code='LHR', short_name='LHR', geom=SQUARE)

    def test_district_by_coordinates(self):
        self.assertEqual(District.get_district_by_coordinates(31.5, 74.5).short_name, 'LHR')
        self.assertIsNone(District.get_district_by_coordinates(20.0, 60.0))


class ChalanCodeTest(TestCase):

    def test_parse_verification_url(self):
        applicant_id, tracking_hash = parse_chalan_code(
            'https://plmis.epapunjab.pk?applicant_id=12&tracking_hash=abc')
        self.assertEqual(applicant_id, '12')
        self.assertEqual(tracking_hash, 'abc')

    def test_parse_bare_query_and_empty(self):
        self.assertEqual(parse_chalan_code('applicant_id=3'), ('3', None))
        self.assertEqual(parse_chalan_code(''), (None, None))

    def test_generated_code_decodes_back(self):
        applicant = make_applicant()
        url = chalan_verification_url(applicant)
        image = generate_qr_code(url)
        self.assertEqual(decode_qr_image(image.read()), url)

    def test_non_image_bytes(self):
        self.assertIsNone(decode_qr_image(b'not an image'))


class CacheManagerTest(TestCase):

    def setUp(self):
        self.cache = CacheManager(backend=LocalCacheBackend(), namespace='pmc-test')
        self.cache.clear()

    def test_set_and_get(self):
        self.cache.set('statistics', {'total': 4})
        self.assertEqual(self.cache.get('statistics'), {'total': 4})
        self.assertIsNone(self.cache.get('missing'))

    def test_delete_pattern(self):
        self.cache.set('applicant:1', 1)
        self.cache.set('applicant:2', 2)
        self.cache.set('districts', [])
        self.assertEqual(self.cache.delete_pattern('applicant:*'), 2)
        self.assertIsNone(self.cache.get('applicant:1'))
        self.assertEqual(self.cache.get('districts'), [])

    def test_get_or_set_calls_producer_once(self):
        calls = []

        def producer():
            calls.append(1)
            return ['Lahore']

        self.assertEqual(self.cache.get_or_set('districts', producer), ['Lahore'])
        self.assertEqual(self.cache.get_or_set('districts', producer), ['Lahore'])
        self.assertEqual(len(calls), 1)

    def test_health_and_stats(self):
        self.cache.set('one', 1)
        self.assertTrue(self.cache.is_healthy())
        stats = self.cache.stats()
        self.assertEqual(stats['backend'], 'memory')
        self.assertEqual(stats['keys'], 1)
