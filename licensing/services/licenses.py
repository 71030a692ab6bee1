import logging

from django.utils import timezone

from licensing.models import BusinessProfile, Collector, Consumer, License, Producer, Recycler
from licensing.services.alerts import AlertService
from licensing.services.fees import total_fee

logger = logging.getLogger(__name__)

LICENSE_DURATION = "3 Years"
FIELD_MAX_LENGTH = 200
ADDRESS_MAX_LENGTH = 300


def get_plastic_types(applicant_detail):
    reg_for = (applicant_detail.registration_for or "").strip()
    default_plastics = "N/A"

    try:
        if reg_for == 'Producer':
            record = Producer.objects.get(applicant=applicant_detail)
        elif reg_for == 'Consumer':
            record = Consumer.objects.get(applicant=applicant_detail)
        elif reg_for == 'Collector':
            record = Collector.objects.get(applicant=applicant_detail)
        elif reg_for == 'Recycler':
            record = Recycler.objects.get(applicant=applicant_detail)
        else:
            return default_plastics
    except (Producer.DoesNotExist, Consumer.DoesNotExist, Collector.DoesNotExist, Recycler.DoesNotExist):
        return default_plastics

    if reg_for == 'Recycler':
        final_list = record.selected_categories or []
    else:
        final_list = (record.registration_required_for or []) + (record.registration_required_for_other or [])

    cleaned = []
    for item in final_list:
        if isinstance(item, dict):
            cleaned.append(", ".join(f"{k}: {v}" for k, v in item.items()))
        else:
            cleaned.append(str(item))

    return ", ".join(cleaned) if cleaned else default_plastics


def get_particulars(applicant_detail):
    """
    Text for ``License.particulars``: the machine count for producers, the
    entity type of the business profile for everyone else.
    """
    reg_for = (applicant_detail.registration_for or "").lower().strip()

    if reg_for == "producer":
        producer = Producer.objects.filter(applicant=applicant_detail).first()
        if producer is None:
            return "N/A"
        return f"Number of Machines: {producer.number_of_machines or 'Unknown'}"

    business_profile = BusinessProfile.objects.filter(applicant=applicant_detail).first()
    if business_profile:
        return f"Business Type: {business_profile.entity_type or 'Unknown'}"
    return "N/A"


def create_or_update_license(applicant_detail, user=None):
    """
    Upsert the single License row of an applicant sitting in the
    ``Download License`` group. Returns the license, or None for any other group.
    """
    if applicant_detail.assigned_group != 'Download License':
        return None

    business_name = ""
    address = ""
    business_profile = BusinessProfile.objects.filter(applicant=applicant_detail).first()
    if business_profile:
        business_name = business_profile.business_name or business_profile.name or ""
        address = business_profile.postal_address or ""

    license_data = {
        "license_for": applicant_detail.registration_for or "",
        "license_number": applicant_detail.tracking_number or "",
        "license_duration": LICENSE_DURATION,
        "owner_name": applicant_detail.full_name[:FIELD_MAX_LENGTH],
        "business_name": business_name[:FIELD_MAX_LENGTH],
        "types_of_plastics": get_plastic_types(applicant_detail)[:FIELD_MAX_LENGTH],
        "particulars": get_particulars(applicant_detail)[:FIELD_MAX_LENGTH],
        "fee_amount": total_fee(applicant_detail),
        "address": address[:ADDRESS_MAX_LENGTH],
        "date_of_issue": timezone.now().date(),
        "created_by": user if user is not None and user.is_authenticated else None,
    }
    license_obj, created = License.objects.update_or_create(
        applicant_id=applicant_detail.pk,
        defaults=license_data,
    )

    if created:
        logger.info("License %s issued for applicant %s", license_obj.license_number, applicant_detail.pk)
        AlertService().create_alert(
            applicant=applicant_detail,
            alert_type='LICENSE_READY',
            title='License ready for download',
            message=f'Please Download License [{applicant_detail.tracking_number}]',
            priority='HIGH',
            metadata={'license_number': license_obj.license_number},
        )
    return license_obj
