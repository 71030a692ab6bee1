from django.core.management.base import BaseCommand

from licensing.models import ApplicantDetail, ApplicantFee
from licensing.services.fees import compute_fee


class Command(BaseCommand):
    help = "Add fees for existing ApplicantDetail records where status != 'Created'"

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help="Report the fees without writing them")

    def handle(self, *args, **options):
        applicants = ApplicantDetail.objects.exclude(application_status='Created').exclude(
            id__in=ApplicantFee.objects.values_list('applicant_id', flat=True))

        added = 0
        for applicant in applicants.order_by('id'):
            fee = compute_fee(applicant)
            if not fee:
                self.stdout.write(f"No fee applicable for Applicant ID: {applicant.id}")
                continue

            if not options['dry_run']:
                ApplicantFee.objects.create(
                    applicant=applicant,
                    fee_amount=fee,
                    is_settled=False,
                    reason="Initial fee for existing record",
                )
            added += 1
            self.stdout.write(f"Fee added for Applicant ID: {applicant.id} - Amount: {fee}")

        self.stdout.write(self.style.SUCCESS(f"Fee addition process completed. {added} fee(s) added."))
