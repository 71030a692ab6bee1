import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from licensing.custom_permissions import IsStaffUser, user_group_names
from licensing.models import Alert, AlertRecipient, ApplicantDetail
from licensing.models_choices import ALERT_CHANNELS, ALERT_PRIORITY_CHOICES, ALERT_TYPE_CHOICES
from licensing.serializers import AlertRecipientSerializer, AlertSerializer
from licensing.services.alerts import AlertService

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def int_param(value, default, minimum=0, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(minimum, number)
    if maximum is not None:
        number = min(maximum, number)
    return number


def is_alert_admin(user):
    return user.is_staff or user.is_superuser or bool(user_group_names(user) & {'Super', 'Admin'})


def user_applicants(request):
    """
    Applicants whose alerts the caller may see: their own applications, or
    any applicant named by ``applicant_id`` for staff.
    """
    applicant_id = request.query_params.get('applicant_id')
    if not applicant_id and hasattr(request.data, 'get'):
        applicant_id = request.data.get('applicant_id')
    applicants = ApplicantDetail.objects.all()
    if not is_alert_admin(request.user):
        applicants = applicants.filter(created_by=request.user)
    if applicant_id:
        applicants = applicants.filter(pk=applicant_id)
    return applicants


def user_alerts(request):
    return Alert.objects.filter(applicant__in=user_applicants(request))


class AlertListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        limit = int_param(request.query_params.get('limit'), DEFAULT_LIMIT, minimum=1, maximum=MAX_LIMIT)
        offset = int_param(request.query_params.get('offset'), 0)
        unread_only = request.query_params.get('unread', '').lower() in ('1', 'true', 'yes')

        service = AlertService()
        applicants = user_applicants(request)
        alerts = service.applicant_alerts(applicants, limit=limit, offset=offset, unread_only=unread_only)
        return Response({
            'results': AlertSerializer(alerts, many=True).data,
            'unread_count': service.unread_count(applicants),
            'limit': limit,
            'offset': offset,
        })


class AlertUnreadCountView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({'unread_count': AlertService().unread_count(user_applicants(request))})


class AlertMarkReadView(APIView):
    permission_classes = [IsAuthenticated]

    def put(self, request, alert_id):
        alert = user_alerts(request).filter(pk=alert_id).first()
        if alert is None:
            return Response({'error': 'Alert not found'}, status=status.HTTP_404_NOT_FOUND)
        alert.mark_as_read()
        return Response(AlertSerializer(alert).data)


class AlertBatchMarkReadView(APIView):
    permission_classes = [IsAuthenticated]

    def put(self, request):
        alert_ids = request.data.get('alert_ids')
        if not alert_ids or not isinstance(alert_ids, list):
            return Response({'error': 'alert_ids is required'}, status=status.HTTP_400_BAD_REQUEST)
        updated = AlertService().mark_multiple_as_read(user_alerts(request).filter(pk__in=alert_ids))
        return Response({'updated': updated})

    post = put


class AlertDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, alert_id):
        alert = get_object_or_404(user_alerts(request), pk=alert_id)
        return Response(AlertSerializer(alert).data)

    def delete(self, request, alert_id):
        alert = get_object_or_404(user_alerts(request), pk=alert_id)
        alert.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class AlertPreferencesView(APIView):
    """Channel preferences of the caller's (or the named) applicant."""
    permission_classes = [IsAuthenticated]

    def _recipient(self, request):
        applicant = user_applicants(request).order_by('-id').first()
        if applicant is None:
            return None
        return AlertRecipient.objects.filter(applicant=applicant).first()

    def get(self, request):
        recipient = self._recipient(request)
        if recipient is None:
            return Response({'error': 'Alert preferences not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(AlertRecipientSerializer(recipient).data)

    def put(self, request):
        preferences = request.data.get('preferences')
        if not preferences or not isinstance(preferences, dict):
            return Response({'error': 'preferences is required'}, status=status.HTTP_400_BAD_REQUEST)

        applicant = user_applicants(request).order_by('-id').first()
        if applicant is None:
            return Response({'error': 'Applicant not found'}, status=status.HTTP_404_NOT_FOUND)

        service = AlertService()
        recipient = service.update_preferences(service.get_or_create_recipient(applicant), preferences)
        return Response(AlertRecipientSerializer(recipient).data)


class AlertStatisticsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(AlertService().statistics(user_applicants(request)))


class AdminCreateAlertView(APIView):
    permission_classes = [IsAuthenticated, IsStaffUser]

    def post(self, request):
        applicant_id = request.data.get('applicant_id')
        title = request.data.get('title')
        message = request.data.get('message')
        if not applicant_id or not title or not message:
            return Response({'error': 'applicant_id, title and message are required'},
                            status=status.HTTP_400_BAD_REQUEST)

        alert_type = request.data.get('alert_type', 'SYSTEM')
        priority = request.data.get('priority', 'MEDIUM')
        if alert_type not in dict(ALERT_TYPE_CHOICES):
            return Response({'error': 'Invalid alert_type'}, status=status.HTTP_400_BAD_REQUEST)
        if priority not in dict(ALERT_PRIORITY_CHOICES):
            return Response({'error': 'Invalid priority'}, status=status.HTTP_400_BAD_REQUEST)
        channels = request.data.get('channels') or ['IN_APP']
        if not isinstance(channels, list) or any(channel not in ALERT_CHANNELS for channel in channels):
            return Response({'error': 'Invalid channels'}, status=status.HTTP_400_BAD_REQUEST)

        applicant = get_object_or_404(ApplicantDetail, pk=applicant_id)
        alert = AlertService().create_alert(
            applicant=applicant,
            alert_type=alert_type,
            title=title,
            message=message,
            description=request.data.get('description'),
            priority=priority,
            channels=channels,
            metadata={'created_by': request.user.username},
        )
        logger.info("Alert %s created for applicant %s by %s", alert.pk, applicant.pk, request.user.username)
        return Response(AlertSerializer(alert).data, status=status.HTTP_201_CREATED)


class AdminAllAlertsView(APIView):
    permission_classes = [IsAuthenticated, IsStaffUser]

    def get(self, request):
        alerts = Alert.objects.select_related('applicant')
        for param in ('alert_type', 'priority', 'status'):
            value = request.query_params.get(param)
            if value:
                alerts = alerts.filter(**{param: value.upper()})
        applicant_id = request.query_params.get('applicant_id')
        if applicant_id:
            alerts = alerts.filter(applicant_id=applicant_id)

        limit = int_param(request.query_params.get('limit'), DEFAULT_LIMIT, minimum=1, maximum=MAX_LIMIT)
        offset = int_param(request.query_params.get('offset'), 0)
        return Response({
            'count': alerts.count(),
            'results': AlertSerializer(alerts[offset:offset + limit], many=True).data,
        })
