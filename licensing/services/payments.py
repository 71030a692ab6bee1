"""
Payment verification: what an applicant owes, what the gateway or the
back office has recorded as paid, and whether a license may be issued.
"""
import logging
import math
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from licensing.models import ApplicantDetail, ApplicantFee, ApplicationSubmitted, BusinessProfile, PSIDTracking
from licensing.services.alerts import AlertService
from licensing.services.cache import invalidate_applicant
from licensing.services.fees import compute_fee

logger = logging.getLogger(__name__)

PAYMENT_CYCLE_DAYS = 30


def _as_decimal(value):
    if value is None:
        return Decimal('0')
    return Decimal(str(value))


def total_due(applicant):
    fees = list(ApplicantFee.objects.filter(applicant=applicant).values_list('fee_amount', flat=True))
    if fees:
        return sum((_as_decimal(fee) for fee in fees), Decimal('0'))
    return _as_decimal(compute_fee(applicant))


def paid_entries(applicant):
    return PSIDTracking.objects.filter(applicant=applicant, payment_status='PAID')


def _entry_amount(entry):
    if entry.amount_paid is not None:
        return _as_decimal(entry.amount_paid)
    return _as_decimal(entry.amount_within_due_date)


def _entry_paid_at(entry):
    if entry.paid_date:
        paid_at = datetime.combine(entry.paid_date, entry.paid_time or time.min)
        return timezone.make_aware(paid_at) if timezone.is_naive(paid_at) else paid_at
    return entry.created_at


def next_due_date(last_payment_date):
    return (last_payment_date or timezone.now()) + timedelta(days=PAYMENT_CYCLE_DAYS)


def days_overdue(due_date):
    now = timezone.now()
    if now <= due_date:
        return 0
    return math.ceil((now - due_date).total_seconds() / 86400)


def payment_status(applicant):
    due = total_due(applicant)
    entries = list(paid_entries(applicant))
    paid = sum((_entry_amount(entry) for entry in entries), Decimal('0'))

    paid_dates = [d for d in (_entry_paid_at(entry) for entry in entries) if d is not None]
    last_payment = max(paid_dates) if paid_dates else None

    remaining = max(Decimal('0'), due - paid)
    is_paid = remaining <= 0
    is_partially_paid = paid > 0 and not is_paid
    if due > 0:
        percentage = min(100, round(paid / due * 100))
    else:
        percentage = 100
    next_due = next_due_date(last_payment)
    overdue = days_overdue(next_due) if not is_paid else 0

    if is_paid:
        status = 'PAID'
    elif is_partially_paid:
        status = 'PARTIAL'
    elif overdue > 0:
        status = 'OVERDUE'
    else:
        status = 'PENDING'

    return {
        'applicant_id': applicant.pk,
        'total_due': float(due),
        'total_paid': float(paid),
        'remaining_balance': float(remaining),
        'is_paid': is_paid,
        'is_partially_paid': is_partially_paid,
        'last_payment_date': last_payment,
        'next_due_date': next_due,
        'days_overdue': overdue,
        'status': status,
        'payment_percentage': int(percentage),
    }


def record_payment(applicant, amount, reference, method='MANUAL'):
    """
    Record a confirmed payment against an applicant.

    Raises ValueError for a non-positive amount or a blank reference. When the
    balance is cleared the application moves to the Download License desk.
    """
    try:
        amount = Decimal(str(amount))
    except (ArithmeticError, TypeError, ValueError):
        raise ValueError('Payment amount must be a number')
    if amount <= 0:
        raise ValueError('Payment amount must be greater than zero')
    reference = (reference or '').strip()
    if not reference:
        raise ValueError('Reference number is required')
    if PSIDTracking.objects.filter(consumer_number=reference).exists():
        raise ValueError('A payment with this reference number already exists')

    now = timezone.localtime()
    profile = BusinessProfile.objects.filter(applicant=applicant).select_related('district').first()
    with transaction.atomic():
        PSIDTracking.objects.create(
            applicant=applicant,
            dept_transaction_id=reference,
            consumer_number=reference,
            due_date=now.date(),
            expiry_date=now,
            amount_within_due_date=amount,
            amount_after_due_date=amount,
            amount_paid=amount,
            paid_date=now.date(),
            paid_time=now.time().replace(microsecond=0),
            consumer_name=applicant.full_name,
            mobile_no=f"0{applicant.mobile_no}" if applicant.mobile_no else '',
            cnic=(applicant.cnic or '').replace('-', ''),
            email=applicant.email,
            district_id=profile.district.pitb_district_id if profile and profile.district else None,
            payment_status='PAID',
            status='PAID',
            message=f'Payment recorded manually ({method})',
        )

        status = payment_status(applicant)
        if status['is_paid']:
            ApplicantDetail.objects.filter(pk=applicant.pk).update(
                assigned_group='Download License', application_status='Submitted')
            applicant.assigned_group = 'Download License'
            applicant.application_status = 'Submitted'
            ApplicationSubmitted.objects.get_or_create(applicant=applicant)

    logger.info("Payment of Rs. %s recorded for applicant %s (ref %s)", amount, applicant.pk, reference)
    invalidate_applicant(applicant.pk)

    AlertService().create_alert(
        applicant=applicant,
        alert_type='PAYMENT_RECEIVED',
        title='Payment received',
        message=f'Payment of Rs. {amount:,.2f} received against reference {reference}.',
        metadata={'reference': reference, 'method': method},
    )
    return status


def payment_history(applicant):
    history = []
    for entry in paid_entries(applicant):
        history.append({
            'amount': float(_entry_amount(entry)),
            'payment_method': 'PSID',
            'reference_number': entry.consumer_number or entry.dept_transaction_id,
            'bank_code': entry.bank_code,
            'transaction_date': _entry_paid_at(entry),
            'status': 'CONFIRMED',
            'notes': entry.message,
        })
    for fee in ApplicantFee.objects.filter(applicant=applicant):
        history.append({
            'amount': float(fee.fee_amount),
            'payment_method': 'CHALAN',
            'reference_number': str(fee.pk),
            'bank_code': None,
            'transaction_date': fee.created_at,
            'status': 'CONFIRMED' if fee.is_settled else 'PENDING',
            'notes': fee.reason,
        })
    history.sort(key=lambda item: item['transaction_date'], reverse=True)
    return history


def is_eligible_for_license(applicant):
    status = payment_status(applicant)
    if status['is_paid']:
        return {'eligible': True, 'reason': 'All fees have been paid.'}
    return {
        'eligible': False,
        'reason': f"Outstanding balance of Rs. {status['remaining_balance']:,.2f}.",
    }


def payment_summary(district=None):
    applicants = ApplicantDetail.objects.all()
    if district is not None:
        applicants = applicants.filter(businessprofile__district=district)

    summary = {
        'total_applicants': 0,
        'total_payment_required': 0.0,
        'total_payment_received': 0.0,
        'total_pending': 0.0,
        'payment_collection_rate': 0,
        'overdue_count': 0,
        'by_status': {'PAID': 0, 'PARTIAL': 0, 'OVERDUE': 0, 'PENDING': 0},
    }
    for applicant in applicants:
        status = payment_status(applicant)
        summary['total_applicants'] += 1
        summary['total_payment_required'] += status['total_due']
        summary['total_payment_received'] += status['total_paid']
        summary['total_pending'] += status['remaining_balance']
        summary['by_status'][status['status']] += 1
        if status['status'] == 'OVERDUE':
            summary['overdue_count'] += 1

    if summary['total_payment_required'] > 0:
        summary['payment_collection_rate'] = round(
            summary['total_payment_received'] / summary['total_payment_required'] * 100)
    return summary
