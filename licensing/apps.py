import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class LicensingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'licensing'

    def ready(self):
        from django.contrib.auth import get_user_model
        from simple_history import register
        from simple_history.exceptions import MultipleRegistrationsError

        try:
            register(get_user_model(), app=__package__)
        except MultipleRegistrationsError:
            logger.debug("User history already registered")

        import licensing.signals  # noqa: F401
        logger.debug("licensing signals connected")
