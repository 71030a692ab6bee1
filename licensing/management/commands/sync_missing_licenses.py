from django.core.management.base import BaseCommand

from licensing.models import ApplicantDetail, License
from licensing.services.licenses import create_or_update_license


class Command(BaseCommand):
    help = 'Create licenses for applicants with assigned_group="Download License" if missing'

    def handle(self, *args, **kwargs):
        applicants = ApplicantDetail.objects.filter(
            assigned_group='Download License'
        ).exclude(
            id__in=License.objects.values_list('applicant_id', flat=True)
        )

        created_count = 0
        for applicant in applicants:
            if create_or_update_license(applicant, user=None) is not None:
                created_count += 1

        self.stdout.write(self.style.SUCCESS(
            f'{created_count} license(s) created successfully for Download License applicants.'
        ))
