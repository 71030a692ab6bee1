"""Management commands: reference data seeding, fee backfill, license sync and permissions."""
import json
import os
import tempfile
from io import StringIO

from django.contrib.auth.models import Group
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from licensing.models import Alert, ApplicantDetail, ApplicantFee, District, Division, License, Producer


class SeedDistrictsTest(TestCase):

    def test_seeding_is_idempotent(self):
        call_command('seed_districts_tehsils', stdout=StringIO())
        call_command('seed_districts_tehsils', stdout=StringIO())
        self.assertEqual(Division.objects.count(), 10)
        self.assertEqual(District.objects.count(), 36)
        self.assertEqual(District.objects.get(district_id=1).short_name, 'LHR')

    def test_boundaries_are_attached_by_name(self):
        square = {"type": "Polygon", "coordinates": [[[74, 31], [75, 31], [75, 32], [74, 32], [74, 31]]]}
        collection = {"type": "FeatureCollection", "features": [
            {"type": "Feature", "geometry": square, "properties": {"district_name": "Lahore"}},
        ]}
        with tempfile.NamedTemporaryFile('w', suffix='.geojson', delete=False) as handle:
            json.dump(collection, handle)
        self.addCleanup(os.remove, handle.name)

        call_command('seed_districts_tehsils', boundaries=handle.name, stdout=StringIO())
        self.assertEqual(District.get_district_by_coordinates(31.5, 74.5).district_name, 'Lahore')

    def test_unreadable_boundaries_file(self):
        with self.assertRaises(CommandError):
            call_command('seed_districts_tehsils', boundaries='/nonexistent/districts.geojson', stdout=StringIO())


class AddFeesTest(TestCase):

    def setUp(self):
        self.applicant = ApplicantDetail.objects.create(
            registration_for='Producer', first_name='Usman', gender='Male', cnic='35202-2222222-2',
            mobile_no='3002223333', application_status='Submitted')
        Producer.objects.create(applicant=self.applicant, number_of_machines='15')

    def test_dry_run_writes_nothing(self):
        out = StringIO()
        call_command('add_fees', dry_run=True, stdout=out)
        self.assertFalse(ApplicantFee.objects.exists())
        self.assertIn('300000', out.getvalue())

    def test_fee_added_once(self):
        call_command('add_fees', stdout=StringIO())
        call_command('add_fees', stdout=StringIO())
        self.assertEqual(ApplicantFee.objects.filter(applicant=self.applicant).count(), 1)


class SyncMissingLicensesTest(TestCase):

    def test_only_download_license_applicants_get_a_license(self):
        ready = ApplicantDetail.objects.create(
            registration_for='Producer', first_name='Hina', gender='Female', cnic='35202-3333333-3',
            mobile_no='3003334444', assigned_group='Download License', tracking_number='LHR-PRO-007')
        Producer.objects.create(applicant=ready, number_of_machines='4')
        ApplicantDetail.objects.create(
            registration_for='Collector', first_name='Asad', gender='Male', cnic='35202-4444444-4',
            mobile_no='3004445555', assigned_group='DO')

        call_command('sync_missing_licenses', stdout=StringIO())
        call_command('sync_missing_licenses', stdout=StringIO())

        license_obj = License.objects.get()
        self.assertEqual(license_obj.applicant_id, ready.id)
        self.assertEqual(license_obj.license_number, 'LHR-PRO-007')
        self.assertEqual(license_obj.particulars, 'Number of Machines: 4')
        self.assertEqual(Alert.objects.filter(applicant=ready, alert_type='LICENSE_READY').count(), 1)


class SeedPermissionsTest(TestCase):

    def test_default_groups_are_created(self):
        out = StringIO()
        call_command('seed_permissions', stdout=out)
        self.assertIn('Permission catalogue ready', out.getvalue())
        self.assertTrue(Group.objects.filter(name='APPLICANT').exists())
        self.assertTrue(Group.objects.get(name='Super').permissions.exists())
