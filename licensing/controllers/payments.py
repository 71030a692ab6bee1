import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from licensing.custom_permissions import IsGroupExist, user_group_names
from licensing.models import ApplicantDetail, District
from licensing.services import payments

logger = logging.getLogger(__name__)


def applicant_for(request, applicant_id):
    """Staff in any group see every applicant; applicants only their own."""
    applicants = ApplicantDetail.objects.all()
    if not (request.user.is_superuser or user_group_names(request.user)):
        applicants = applicants.filter(created_by=request.user)
    return get_object_or_404(applicants, pk=applicant_id)


class PaymentStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, applicant_id):
        applicant = applicant_for(request, applicant_id)
        return Response(payments.payment_status(applicant))

    def post(self, request, applicant_id):
        """Record a confirmed payment for the applicant."""
        if not (request.user.is_superuser or user_group_names(request.user)):
            return Response({'error': 'You do not have permission to record payments.'},
                            status=status.HTTP_403_FORBIDDEN)
        applicant = applicant_for(request, applicant_id)
        try:
            result = payments.record_payment(
                applicant,
                request.data.get('amount'),
                request.data.get('reference_number') or request.data.get('reference'),
                method=request.data.get('payment_method', 'MANUAL'),
            )
        except ValueError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(result, status=status.HTTP_201_CREATED)


class PaymentHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, applicant_id):
        applicant = applicant_for(request, applicant_id)
        return Response({
            'applicant_id': applicant.pk,
            'payments': payments.payment_history(applicant),
        })


class LicenseEligibilityView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, applicant_id):
        applicant = applicant_for(request, applicant_id)
        return Response(payments.is_eligible_for_license(applicant))


class PaymentSummaryView(APIView):
    permission_classes = [IsAuthenticated, IsGroupExist]

    def get(self, request):
        district = None
        district_id = request.query_params.get('district_id')
        if district_id:
            district = get_object_or_404(District, pk=district_id)
        return Response(payments.payment_summary(district))
