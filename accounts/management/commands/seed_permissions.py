from django.core.management.base import BaseCommand

from accounts.rbac import reset_permissions


class Command(BaseCommand):
    help = "Create the permission catalogue and reset the default group permissions"

    def handle(self, *args, **kwargs):
        count = reset_permissions()
        self.stdout.write(self.style.SUCCESS(f"Permission catalogue ready: {count} permission(s)."))
