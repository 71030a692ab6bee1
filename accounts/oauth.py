"""
Google and GitHub sign-in.

The browser is sent to the provider with a signed, timestamped ``state``;
the callback exchanges the returned code for a provider token, reads the
profile and maps it onto a portal user.
"""
import logging
import re
from urllib.parse import urlencode

import requests
from django.conf import settings
from django.contrib.auth.models import Group, User
from django.core import signing
from django.db import transaction
from django.utils.crypto import get_random_string

from accounts.models import SocialAccount

logger = logging.getLogger(__name__)

STATE_MAX_AGE = 600
STATE_SALT = 'accounts.oauth.state'
REQUEST_TIMEOUT = 15

PROVIDERS = {
    'google': {
        'authorize_url': 'https://accounts.google.com/o/oauth2/v2/auth',
        'token_url': 'https://oauth2.googleapis.com/token',
        'profile_url': 'https://www.googleapis.com/oauth2/v2/userinfo',
        'scope': 'openid email profile',
        'settings_prefix': 'GOOGLE',
    },
    'github': {
        'authorize_url': 'https://github.com/login/oauth/authorize',
        'token_url': 'https://github.com/login/oauth/access_token',
        'profile_url': 'https://api.github.com/user',
        'emails_url': 'https://api.github.com/user/emails',
        'scope': 'user:email',
        'settings_prefix': 'GITHUB',
    },
}


class OAuthError(Exception):
    """The provider refused the code or returned an unusable profile."""


def provider_settings(provider):
    prefix = PROVIDERS[provider]['settings_prefix']
    return {
        'client_id': getattr(settings, f'{prefix}_CLIENT_ID', ''),
        'client_secret': getattr(settings, f'{prefix}_CLIENT_SECRET', ''),
        'redirect_uri': getattr(settings, f'{prefix}_REDIRECT_URI', ''),
    }


def make_state(provider):
    signer = signing.TimestampSigner(salt=STATE_SALT)
    return signer.sign(f"{provider}:{get_random_string(16)}")


def verify_state(provider, state):
    """True when ``state`` was issued for ``provider`` less than 10 minutes ago."""
    if not state:
        return False
    signer = signing.TimestampSigner(salt=STATE_SALT)
    try:
        value = signer.unsign(state, max_age=STATE_MAX_AGE)
    except signing.BadSignature:
        return False
    return value.split(':', 1)[0] == provider


def auth_url(provider):
    config = PROVIDERS[provider]
    credentials = provider_settings(provider)
    state = make_state(provider)
    params = {
        'client_id': credentials['client_id'],
        'redirect_uri': credentials['redirect_uri'],
        'scope': config['scope'],
        'state': state,
    }
    if provider == 'google':
        params.update({'response_type': 'code', 'access_type': 'online', 'prompt': 'select_account'})
    return f"{config['authorize_url']}?{urlencode(params)}", state


def exchange_code(provider, code):
    config = PROVIDERS[provider]
    credentials = provider_settings(provider)
    payload = {
        'client_id': credentials['client_id'],
        'client_secret': credentials['client_secret'],
        'code': code,
        'redirect_uri': credentials['redirect_uri'],
    }
    if provider == 'google':
        payload['grant_type'] = 'authorization_code'

    try:
        response = requests.post(config['token_url'], data=payload, headers={'Accept': 'application/json'},
                                 timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("%s token exchange failed: %s", provider, exc)
        raise OAuthError(f"Failed to exchange code with {provider}.") from exc

    token = data.get('access_token')
    if not token:
        raise OAuthError(data.get('error_description') or f"{provider} returned no access token.")
    return token


def _get_json(url, token):
    response = requests.get(url, headers={'Authorization': f'Bearer {token}', 'Accept': 'application/json'},
                            timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    return response.json()


def fetch_profile(provider, token):
    """Normalised ``{id, email, name, username_hint, raw}`` of the provider account."""
    config = PROVIDERS[provider]
    try:
        data = _get_json(config['profile_url'], token)
        email = data.get('email') or ''
        if provider == 'github' and not email:
            emails = _get_json(config['emails_url'], token)
            primary = next((item for item in emails if item.get('primary')), None)
            verified = next((item for item in emails if item.get('verified')), None)
            chosen = primary or verified or (emails[0] if emails else None)
            email = chosen.get('email', '') if chosen else ''
    except (requests.RequestException, ValueError) as exc:
        logger.warning("%s profile request failed: %s", provider, exc)
        raise OAuthError(f"Failed to read the {provider} profile.") from exc

    if not data.get('id'):
        raise OAuthError(f"{provider} returned no account id.")
    return {
        'id': str(data['id']),
        'email': email,
        'name': data.get('name') or '',
        'username_hint': data.get('login') or '',
        'raw': data,
    }


def unique_username(email, hint=''):
    base = (email.split('@')[0] if email else hint) or 'user'
    base = re.sub(r'[^\w.@+-]', '', base)[:140] or 'user'
    username = base
    suffix = 1
    while User.objects.filter(username=username).exists():
        suffix += 1
        username = f"{base}{suffix}"
    return username


@transaction.atomic
def user_for_profile(provider, profile):
    """
    The portal user for a provider profile: the linked SocialAccount, else a
    user with the same email, else a new APPLICANT without a usable password.
    """
    account = SocialAccount.objects.select_related('user').filter(
        provider=provider, provider_user_id=profile['id']).first()
    if account is not None:
        account.email = profile['email'] or account.email
        account.extra_data = profile['raw']
        account.save()
        return account.user, False

    created = False
    user = User.objects.filter(email__iexact=profile['email']).first() if profile['email'] else None
    if user is None:
        first_name, _, last_name = profile['name'].partition(' ')
        user = User(
            username=unique_username(profile['email'], profile['username_hint']),
            email=profile['email'],
            first_name=first_name[:150],
            last_name=last_name[:150],
        )
        user.set_unusable_password()
        user.save()
        applicant_group, _ = Group.objects.get_or_create(name='APPLICANT')
        user.groups.add(applicant_group)
        created = True
        logger.info("User %s created from %s sign-in", user.username, provider)

    SocialAccount.objects.create(
        user=user, provider=provider, provider_user_id=profile['id'],
        email=profile['email'], extra_data=profile['raw'],
    )
    return user, created
