import re

from django.core.exceptions import ValidationError

MIN_LENGTH = 8
MAX_LENGTH = 128


def password_policy_error(password):
    """Return the first policy violation for ``password``, or None."""
    password = password or ''
    if not MIN_LENGTH <= len(password) <= MAX_LENGTH:
        return f"Password must be {MIN_LENGTH}-{MAX_LENGTH} characters long."
    if not re.search(r'[a-z]', password):
        return "Password must include at least one lowercase letter."
    if not re.search(r'[A-Z]', password):
        return "Password must include at least one uppercase letter."
    if not re.search(r'\d', password):
        return "Password must include at least one number."
    return None


class PortalPasswordValidator:
    """AUTH_PASSWORD_VALIDATORS entry applying the portal policy."""

    def validate(self, password, user=None):
        error = password_policy_error(password)
        if error:
            raise ValidationError(error, code='password_policy')

    def get_help_text(self):
        return (f"Your password must be {MIN_LENGTH}-{MAX_LENGTH} characters long and include "
                "lowercase and uppercase letters and a number.")
