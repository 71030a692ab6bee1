from django.utils.timezone import now
from oauth2_provider.models import AccessToken
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication

from licensing.threadlocals import set_current_user


class JWTAuthenticationWithUserTracking(JWTAuthentication):
    """JWT authentication that also records the user for audit signals."""

    def authenticate(self, request):
        result = super().authenticate(request)
        if result is not None:
            user, _ = result
            set_current_user(user)
        return result


class CustomTokenAuthentication(BaseAuthentication):
    """
    Validates bearer tokens issued by ``plmis-token/`` against the OAuth2
    AccessToken table. Client-credentials tokens carry no user.
    """

    def authenticate(self, request):
        auth_header = request.headers.get('Authorization')
        if not auth_header:
            return None

        try:
            token_type, access_token = auth_header.split()
        except ValueError:
            raise AuthenticationFailed('Invalid authorization header format.')
        if token_type.lower() != 'bearer':
            raise AuthenticationFailed('Invalid token type.')

        try:
            token = AccessToken.objects.select_related('user').get(token=access_token)
        except AccessToken.DoesNotExist:
            raise AuthenticationFailed('Invalid or non-existent token.')
        if token.expires < now():
            raise AuthenticationFailed('Token has expired.')

        return (token.user, token)

    def authenticate_header(self, request):
        return 'Bearer'
