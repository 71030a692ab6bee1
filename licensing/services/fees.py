import logging
from decimal import Decimal

from django.db.models import Sum

from licensing.models import ApplicantFee, BusinessProfile, Producer
from licensing.models_choices import fee_structure

logger = logging.getLogger(__name__)


def producer_fee(number_of_machines):
    try:
        machines = int(str(number_of_machines).strip())
    except (TypeError, ValueError):
        return 0

    if machines <= 0:
        return 0
    if machines <= 5:
        return fee_structure['Producer']['upto_5_machines']
    if machines <= 10:
        return fee_structure['Producer']['from_6_to_10_machines']
    return fee_structure['Producer']['more_than_10_machines']


def compute_fee(applicant):
    """
    License fee in PKR for an applicant.

    Producers pay by machine count. Every other category pays by the entity
    type of the business profile, which defaults to Individual. Unknown
    categories and producers without a machine count pay nothing.
    """
    license_type = applicant.registration_for
    if license_type == 'Producer':
        producer = Producer.objects.filter(applicant=applicant).first()
        if not producer or not producer.number_of_machines:
            return 0
        return producer_fee(producer.number_of_machines)

    if license_type in fee_structure:
        business_profile = BusinessProfile.objects.filter(applicant=applicant).first()
        entity_type = business_profile.entity_type if business_profile and business_profile.entity_type else 'Individual'
        return fee_structure[license_type].get(entity_type, 0)

    return 0


def get_or_create_unsettled_fee(applicant, fee=None):
    """Return the applicant's unsettled fee row for ``fee``, creating it when missing."""
    if fee is None:
        fee = compute_fee(applicant)

    fee_row = ApplicantFee.objects.filter(
        applicant=applicant, fee_amount=Decimal(fee), is_settled=False).order_by('-id').first()
    if fee_row is None:
        fee_row = ApplicantFee.objects.create(applicant=applicant, fee_amount=Decimal(fee), is_settled=False)
        logger.info("Fee of Rs. %s recorded for applicant %s", fee, applicant.pk)
    return fee_row


def settle_oldest_fee(applicant):
    fee_row = ApplicantFee.objects.filter(applicant=applicant, is_settled=False).order_by('created_at', 'id').first()
    if fee_row is not None:
        fee_row.is_settled = True
        fee_row.save()
    return fee_row


def total_fee(applicant):
    return ApplicantFee.objects.filter(applicant=applicant).aggregate(total=Sum('fee_amount'))['total'] or Decimal('0')
