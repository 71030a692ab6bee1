import logging

from django.db.models import Count, Q
from django.utils import timezone

from licensing.models import Alert, AlertRecipient
from licensing.models_choices import ALERT_CHANNELS

logger = logging.getLogger(__name__)

DEFAULT_CHANNELS = ['IN_APP']


class AlertDeliveryError(Exception):
    pass


class AlertService:
    """
    Stores applicant alerts and fans them out to the channels the applicant
    has enabled. In-app alerts are the stored rows themselves; e-mail, SMS and
    WhatsApp deliveries are written to the log.
    """

    def get_or_create_recipient(self, applicant):
        recipient, created = AlertRecipient.objects.get_or_create(
            applicant=applicant,
            defaults={
                'email': applicant.email,
                'phone': f"0{applicant.mobile_no}" if applicant.mobile_no else None,
            },
        )
        if created:
            logger.debug("Alert recipient created for applicant %s", applicant.pk)
        return recipient

    def create_alert(self, applicant, alert_type, title, message, description=None,
                     priority='MEDIUM', channels=None, metadata=None):
        channels = [c for c in (channels or DEFAULT_CHANNELS) if c in ALERT_CHANNELS]
        alert = Alert.objects.create(
            applicant=applicant,
            alert_type=alert_type,
            priority=priority,
            title=title,
            message=message,
            description=description,
            channels=channels,
            metadata=metadata or {},
        )
        self.send_alert(alert)
        return alert

    def send_alert(self, alert):
        recipient = self.get_or_create_recipient(alert.applicant)
        valid_channels = recipient.allowed_channels(alert.channels)

        try:
            if not valid_channels:
                raise AlertDeliveryError(f"No valid channels available for alert {alert.pk}")
            for channel in valid_channels:
                self._send_through_channel(alert, recipient, channel)
        except AlertDeliveryError as exc:
            alert.status = 'FAILED'
            alert.failure_reason = str(exc)
            alert.retry_count += 1
            alert.save(update_fields=['status', 'failure_reason', 'retry_count'])
            logger.warning("Alert %s failed: %s", alert.pk, exc)
            return False

        alert.status = 'SENT'
        alert.sent_at = timezone.now()
        alert.save(update_fields=['status', 'sent_at'])
        return True

    def _send_through_channel(self, alert, recipient, channel):
        if channel == 'IN_APP':
            return
        if channel == 'EMAIL':
            if not recipient.email:
                raise AlertDeliveryError("Recipient has no e-mail address")
            logger.info("E-mail alert to %s: %s", recipient.email, alert.title)
        elif channel in ('SMS', 'WHATSAPP'):
            if not recipient.phone:
                raise AlertDeliveryError("Recipient has no phone number")
            logger.info("%s alert to %s: %s", channel, recipient.phone, alert.message)
        else:
            raise AlertDeliveryError(f"Unsupported channel: {channel}")

    def applicant_alerts(self, applicants, limit=20, offset=0, unread_only=False):
        alerts = Alert.objects.filter(applicant__in=applicants)
        if unread_only:
            alerts = alerts.filter(is_read=False)
        return alerts[offset:offset + limit]

    def unread_count(self, applicants):
        return Alert.objects.filter(applicant__in=applicants, is_read=False).count()

    def mark_multiple_as_read(self, alerts):
        return alerts.filter(is_read=False).update(is_read=True, read_at=timezone.now())

    def update_preferences(self, recipient, preferences):
        for field in ('email_enabled', 'sms_enabled', 'in_app_enabled', 'whatsapp_enabled', 'email', 'phone'):
            if field in preferences:
                setattr(recipient, field, preferences[field])
        recipient.save()
        return recipient

    def statistics(self, applicants):
        alerts = Alert.objects.filter(applicant__in=applicants)
        totals = alerts.aggregate(
            total=Count('id'),
            unread=Count('id', filter=Q(is_read=False)),
            sent=Count('id', filter=Q(status='SENT')),
            failed=Count('id', filter=Q(status='FAILED')),
        )
        totals['by_type'] = {
            row['alert_type']: row['count']
            for row in alerts.values('alert_type').annotate(count=Count('id'))
        }
        totals['by_priority'] = {
            row['priority']: row['count']
            for row in alerts.values('priority').annotate(count=Count('id'))
        }
        return totals
