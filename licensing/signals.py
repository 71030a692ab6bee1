import logging

from django.contrib.auth.signals import user_logged_in, user_logged_out
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from licensing.models import AccessLog, ApiLog, AuditLog
from licensing.threadlocals import get_current_user
from licensing.utils import get_client_ip

logger = logging.getLogger(__name__)

# Log tables and framework bookkeeping are never audited.
SKIPPED_MODELS = {AuditLog, AccessLog, ApiLog}
SKIPPED_APPS = {'sessions', 'contenttypes', 'admin', 'oauth2_provider'}
SKIPPED_LABELS = {'accounts.UserAuditLog'}


def _is_audited(sender):
    if sender in SKIPPED_MODELS:
        return False
    if sender._meta.app_label in SKIPPED_APPS or sender._meta.label in SKIPPED_LABELS:
        return False
    return not sender.__name__.startswith('Historical')


def _current_user():
    user = get_current_user()
    if user is None or not getattr(user, 'is_authenticated', False) or user.pk is None:
        return None
    return user


@receiver(user_logged_in)
def log_user_login(sender, request, user, **kwargs):
    AuditLog.objects.create(
        user=user,
        action='login',
        ip_address=get_client_ip(request) if request is not None else None,
        description=f"{user.username} logged in."
    )


@receiver(user_logged_out)
def log_user_logout(sender, request, user, **kwargs):
    if user is None:
        return
    AuditLog.objects.create(
        user=user,
        action='logout',
        ip_address=get_client_ip(request) if request is not None else None,
        description=f"{user.username} logged out."
    )


@receiver(post_save)
def log_save(sender, instance, created, raw=False, **kwargs):
    if raw or not _is_audited(sender):
        return

    action = "create" if created else "update"
    AuditLog.objects.create(
        user=_current_user(),
        action=action,
        model_name=sender.__name__,
        object_id=str(instance.pk),
        description=f"{sender.__name__} {'created' if created else 'updated'} with ID {instance.pk}"
    )


@receiver(post_delete)
def log_delete(sender, instance, **kwargs):
    if not _is_audited(sender):
        return

    AuditLog.objects.create(
        user=_current_user(),
        action="delete",
        model_name=sender.__name__,
        object_id=str(instance.pk),
        description=f"{sender.__name__} deleted with ID {instance.pk}"
    )
    logger.info("%s %s deleted", sender.__name__, instance.pk)
