import json
import logging

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from licensing.models import Division, District, Tehsil
from licensing.services.cache import invalidate_districts

logger = logging.getLogger(__name__)

DIVISIONS = [
    (1, "Lahore", "LHR"),
    (2, "Faisalabad", "FSD"),
    (3, "Rawalpindi", "RWP"),
    (4, "Sargodha", "SGD"),
    (5, "Multan", "MLT"),
    (6, "Sahiwal", "SWL"),
    (7, "Gujranwala", "GWL"),
    (8, "Bahawalpur", "BWP"),
    (9, "Dera Ghazi Khan", "DGK"),
    (10, "Gujrat", "GRT"),
]

# (district_id, division_id, name, code, short name)
DISTRICTS = [
    (1, 1, "Lahore", "LHR-01", "LHR"),
    (2, 1, "Kasur", "KSR-02", "KSR"),
    (3, 1, "Sheikhupura", "SKP-03", "SKP"),
    (4, 1, "Nankana Sahib", "NNS-04", "NNS"),
    (5, 2, "Faisalabad", "FSD-05", "FSD"),
    (6, 2, "Jhang", "JHG-06", "JHG"),
    (7, 2, "Toba Tek Singh", "TTS-07", "TTS"),
    (8, 2, "Chiniot", "CHT-08", "CHT"),
    (9, 3, "Rawalpindi", "RWP-09", "RWP"),
    (10, 3, "Attock", "ATK-10", "ATK"),
    (11, 3, "Chakwal", "CKW-11", "CKW"),
    (12, 3, "Jhelum", "JLM-12", "JLM"),
    (13, 4, "Sargodha", "SGD-13", "SGD"),
    (14, 4, "Khushab", "KHB-14", "KHB"),
    (15, 4, "Mianwali", "MWI-15", "MWI"),
    (16, 4, "Bhakkar", "BKR-16", "BKR"),
    (17, 5, "Multan", "MLT-17", "MLT"),
    (18, 5, "Khanewal", "KWL-18", "KWL"),
    (19, 5, "Lodhran", "LDN-19", "LDN"),
    (20, 5, "Vehari", "VHR-20", "VHR"),
    (21, 6, "Sahiwal", "SWL-21", "SWL"),
    (22, 6, "Okara", "OKR-22", "OKR"),
    (23, 6, "Pakpattan", "PKP-23", "PKP"),
    (24, 7, "Gujranwala", "GRW-24", "GRW"),
    (25, 7, "Sialkot", "SKT-25", "SKT"),
    (26, 7, "Narowal", "NRL-26", "NRL"),
    (27, 7, "Hafizabad", "HFD-27", "HFD"),
    (28, 8, "Bahawalpur", "BWP-28", "BWP"),
    (29, 8, "Bahawalnagar", "BWN-29", "BWN"),
    (30, 8, "Rahim Yar Khan", "RYK-30", "RYK"),
    (31, 9, "Dera Ghazi Khan", "DGK-31", "DGK"),
    (32, 9, "Layyah", "LYH-32", "LYH"),
    (33, 9, "Muzaffargarh", "MZG-33", "MZG"),
    (34, 9, "Rajanpur", "RJP-34", "RJP"),
    (35, 10, "Gujrat", "GJT-35", "GJT"),
    (36, 10, "Mandi Bahauddin", "MBD-36", "MBD"),
]


class Command(BaseCommand):
    help = "Seed Divisions, Districts, and Tehsils for Punjab, Pakistan"

    def add_arguments(self, parser):
        parser.add_argument('--boundaries', help="GeoJSON FeatureCollection with a district_name property per feature")
        parser.add_argument('--tehsils', help="JSON list of {tehsil_name, tehsil_code, district_id}")

    @transaction.atomic
    def handle(self, *args, **options):
        self.seed_divisions()
        self.seed_districts()
        if options.get('boundaries'):
            self.load_boundaries(options['boundaries'])
        if options.get('tehsils'):
            self.seed_tehsils(options['tehsils'])
        invalidate_districts()

    def seed_divisions(self):
        for division_id, name, code in DIVISIONS:
            obj, created = Division.objects.update_or_create(
                division_id=division_id,
                defaults={"division_name": name, "division_code": code},
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f'Division {obj.division_name} created'))

    def seed_districts(self):
        created_count = 0
        for district_id, division_id, name, code, short_name in DISTRICTS:
            _, created = District.objects.update_or_create(
                district_id=district_id,
                defaults={
                    "division_id": division_id,
                    "district_name": name,
                    "district_code": code,
                    "short_name": short_name,
                },
            )
            created_count += int(created)
        self.stdout.write(self.style.SUCCESS(f'{created_count} district(s) created, '
                                             f'{len(DISTRICTS) - created_count} updated'))

    def _read_json(self, path):
        try:
            with open(path, encoding='utf-8') as handle:
                return json.load(handle)
        except (OSError, ValueError) as exc:
            raise CommandError(f"Cannot read {path}: {exc}")

    def load_boundaries(self, path):
        collection = self._read_json(path)
        districts = {district.district_name.lower(): district for district in District.objects.all()}

        matched = 0
        for item in collection.get('features', []):
            name = (item.get('properties') or {}).get('district_name', '')
            district = districts.get(name.strip().lower())
            if district is None:
                self.stdout.write(self.style.WARNING(f'No district matches boundary "{name}"'))
                continue
            district.geom = item.get('geometry')
            district.save(update_fields=['geom'])
            matched += 1
        self.stdout.write(self.style.SUCCESS(f'Boundaries loaded for {matched} district(s)'))

    def seed_tehsils(self, path):
        created_count = 0
        for row in self._read_json(path):
            district = District.objects.filter(pk=row.get('district_id')).first()
            if district is None:
                self.stdout.write(self.style.WARNING(f'Skipping tehsil {row.get("tehsil_name")}: unknown district'))
                continue
            _, created = Tehsil.objects.update_or_create(
                tehsil_code=row['tehsil_code'],
                defaults={
                    "tehsil_name": row['tehsil_name'],
                    "district": district,
                    "division_id": district.division_id,
                },
            )
            created_count += int(created)
        self.stdout.write(self.style.SUCCESS(f'{created_count} tehsil(s) created'))
