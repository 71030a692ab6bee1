import logging

from django.contrib.auth.models import Group, User
from django.contrib.auth.signals import user_logged_in, user_logged_out
from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from accounts import oauth
from accounts.captcha import captcha_error, issue_captcha
from accounts.models import SystemConfig
from accounts.password_policy import password_policy_error
from accounts.rbac import ROLE_DASHBOARD_KEY
from accounts.serializers import RegisterSerializer, UserSerializer
from licensing.models import ApplicantDetail, PSIDTracking, UserProfile

logger = logging.getLogger(__name__)

RECOVERY_FIELDS_MESSAGE = "Please provide Tracking Number or PSID, along with Mobile Number and CNIC."
NO_USER_MESSAGE = "No user found matching the provided details."


def tokens_for(user):
    refresh = RefreshToken.for_user(user)
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


@api_view(['GET'])
@permission_classes([AllowAny])
def generate_captcha(request):
    image, token = issue_captcha()
    return Response({
        "captcha_image": image,
        "captcha_token": token,
    })


def recovery_applicant(data):
    """
    The application identified by tracking number or PSID, matched against
    the mobile number and CNIC given alongside it.
    """
    tracking_number = data.get("tracking_number")
    psid = data.get("psid")
    applicants = ApplicantDetail.objects.filter(cnic=data.get("cnic"), mobile_no=data.get("mobile_number"))

    if tracking_number:
        return applicants.filter(tracking_number=tracking_number).select_related('created_by').first()

    psid_record = PSIDTracking.objects.filter(consumer_number=psid).first()
    if psid_record is None:
        return None
    return applicants.filter(id=psid_record.applicant_id).select_related('created_by').first()


def has_recovery_fields(data):
    return data.get("mobile_number") and data.get("cnic") and (data.get("tracking_number") or data.get("psid"))


class FindUserView(generics.GenericAPIView):
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        if not has_recovery_fields(request.data):
            return Response({"detail": RECOVERY_FIELDS_MESSAGE}, status=status.HTTP_400_BAD_REQUEST)

        applicant = recovery_applicant(request.data)
        if applicant is None:
            return Response({"detail": NO_USER_MESSAGE}, status=status.HTTP_404_NOT_FOUND)

        username = applicant.created_by.username if applicant.created_by else "Unknown"
        return Response({"username": username}, status=status.HTTP_200_OK)


class ResetForgotPassword(generics.GenericAPIView):
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        username = request.data.get("username")
        new_password = request.data.get("new_password")
        if not has_recovery_fields(request.data) or not username:
            return Response({"detail": RECOVERY_FIELDS_MESSAGE}, status=status.HTTP_400_BAD_REQUEST)

        applicant = recovery_applicant(request.data)
        if applicant is None or applicant.created_by is None:
            return Response({"detail": NO_USER_MESSAGE}, status=status.HTTP_404_NOT_FOUND)

        user = applicant.created_by
        if user.username != username:
            return Response({"detail": RECOVERY_FIELDS_MESSAGE}, status=status.HTTP_400_BAD_REQUEST)

        error = password_policy_error(new_password)
        if error:
            return Response({"detail": error}, status=status.HTTP_400_BAD_REQUEST)

        user.set_password(new_password)
        user.save()
        logger.info("Password of %s reset through account recovery", user.username)
        return Response({'message': 'Password reset successfully.'}, status=status.HTTP_200_OK)


# Register API
class RegisterView(generics.CreateAPIView):
    queryset = User.objects.all()
    serializer_class = RegisterSerializer
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def create(self, request, *args, **kwargs):
        if not request.data.get('username') or not request.data.get('password'):
            return Response({"error": "Username and password are required."}, status=status.HTTP_400_BAD_REQUEST)

        error = captcha_error(request.data)
        if error:
            return Response({"error": error}, status=status.HTTP_400_BAD_REQUEST)
        return super().create(request, *args, **kwargs)


# Login API (returns a JWT token)
class LoginView(generics.GenericAPIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        username = request.data.get('username')
        password = request.data.get('password')

        if not username or not password:
            return Response({"error": "Username and password are required."}, status=status.HTTP_400_BAD_REQUEST)

        error = captcha_error(request.data)
        if error:
            return Response({"error": error}, status=status.HTTP_400_BAD_REQUEST)

        user = User.objects.filter(username=username).first()
        if user is None:
            return Response(
                {"error": "User does not exist. Please sign up."},
                status=status.HTTP_400_BAD_REQUEST
            )

        if not user.is_active or not user.check_password(password):
            logger.info("Failed login for %s", username)
            return Response({"error": "Invalid credentials"}, status=status.HTTP_400_BAD_REQUEST)

        user_logged_in.send(sender=user.__class__, request=request, user=user)
        return Response(tokens_for(user))


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        user_logged_out.send(sender=request.user.__class__, request=request, user=request.user)
        return Response({"message": "Signed out"})


# Profile API
class ProfileView(generics.RetrieveUpdateAPIView):
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'patch', 'head', 'options']

    def get_object(self):
        return self.request.user


class RoleDashboardView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(SystemConfig.get_value(ROLE_DASHBOARD_KEY, {}))


class ResetPasswordView(generics.GenericAPIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        current_password = request.data.get('current_password')
        new_password = request.data.get('new_password')

        user = request.user
        if not user.check_password(current_password):
            return Response({'detail': 'Current password is incorrect.'}, status=status.HTTP_400_BAD_REQUEST)

        error = password_policy_error(new_password)
        if error:
            return Response({'detail': error}, status=status.HTTP_400_BAD_REQUEST)

        user.set_password(new_password)
        user.save()
        return Response({'message': 'Password updated successfully.'}, status=status.HTTP_200_OK)


def do_district(user):
    """The district of a DO user, or an error Response."""
    if not user.groups.filter(name="DO").exists():
        return None, Response(
            {"error": "You do not have permission to create or update an Inspector user."},
            status=status.HTTP_403_FORBIDDEN
        )

    profile = UserProfile.objects.filter(user=user).select_related('district').first()
    if profile is None or profile.district is None:
        return None, Response(
            {"error": "Your profile does not have an assigned district."},
            status=status.HTTP_400_BAD_REQUEST
        )
    return profile.district, None


class CreateInspectorUserView(generics.GenericAPIView):
    """A DO creates or updates an Inspector user in their own district."""
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        assigned_district, error = do_district(request.user)
        if error is not None:
            return error

        user_id = request.data.get('user_id')
        username = request.data.get('username')
        password = request.data.get('password')
        first_name = request.data.get('first_name')
        last_name = request.data.get('last_name')

        if not username:
            return Response({"error": "Username is required."}, status=status.HTTP_400_BAD_REQUEST)

        user = None
        if user_id:
            user = User.objects.filter(
                id=user_id, username=username, groups__name="Inspector",
                userprofile__district=assigned_district,
            ).first()

        if user:
            if first_name:
                user.first_name = first_name
            if last_name:
                user.last_name = last_name
            if password:
                user.set_password(password)
            user.save()

            return Response(
                {"message": f"Inspector '{username}' updated successfully."},
                status=status.HTTP_200_OK
            )

        if User.objects.filter(username=username).exists():
            return Response({"error": "This username is already taken."}, status=status.HTTP_400_BAD_REQUEST)

        new_user = User.objects.create_user(username=username, first_name=first_name or '',
                                            last_name=last_name or '', password=password or None)
        inspector_group, _ = Group.objects.get_or_create(name="Inspector")
        new_user.groups.add(inspector_group)
        UserProfile.objects.create(user=new_user, district=assigned_district)
        logger.info("Inspector %s created by %s", username, request.user.username)

        return Response(
            {"message": f"Inspector '{username}' created successfully in district '{assigned_district.district_name}'."},
            status=status.HTTP_201_CREATED
        )


class ListInspectorsView(generics.GenericAPIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        """Inspector users in the calling DO's district."""
        if not request.user.groups.filter(name="DO").exists():
            return Response(
                {"error": "You do not have permission to view Inspector users."},
                status=status.HTTP_403_FORBIDDEN
            )
        assigned_district, error = do_district(request.user)
        if error is not None:
            return error

        inspector_users = User.objects.filter(
            groups__name="Inspector",
            userprofile__district=assigned_district
        ).values("id", "username", "first_name", "last_name")
        return Response(list(inspector_users), status=status.HTTP_200_OK)


class OAuthAuthUrlView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    provider = None

    def get(self, request):
        url, state = oauth.auth_url(self.provider)
        return Response({'auth_url': url, 'state': state})


class OAuthCallbackView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, provider):
        if provider not in oauth.PROVIDERS:
            return Response({'error': 'Unsupported provider.'}, status=status.HTTP_404_NOT_FOUND)

        code = request.data.get('code')
        if not code:
            return Response({'error': 'code is required.'}, status=status.HTTP_400_BAD_REQUEST)
        if not oauth.verify_state(provider, request.data.get('state')):
            return Response({'error': 'Invalid or expired state.'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            token = oauth.exchange_code(provider, code)
            profile = oauth.fetch_profile(provider, token)
        except oauth.OAuthError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        user, created = oauth.user_for_profile(provider, profile)
        if not user.is_active:
            return Response({'error': 'Invalid credentials'}, status=status.HTTP_400_BAD_REQUEST)

        user_logged_in.send(sender=user.__class__, request=request, user=user)
        return Response({
            **tokens_for(user),
            'created': created,
            'user': UserSerializer(user).data,
        })
