"""Header bell notifications and the global search box."""
from django.db.models import Q
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from licensing.models import ApplicantDetail, BusinessProfile
from licensing.views import scope_applicants

SEARCH_LIMIT = 20


def notifications_for(user):
    """Assignment remarks and license notices shaped for the header bell."""
    applicants = ApplicantDetail.objects.filter(
        created_by=user, assigned_group__in=['APPLICANT', 'Download License'])

    notifications = []
    for applicant in applicants.prefetch_related('applicationassignment'):
        if applicant.assigned_group == 'Download License':
            notifications.append({
                'id': f"license-{applicant.id}",
                'target': applicant.tracking_number,
                'description': f"Please Download License [{applicant.tracking_number or 'N/A'}]",
                'date': applicant.updated_at.isoformat()[:19],
                'link': '/home-license',
            })
            continue

        for assignment in applicant.applicationassignment.all():
            if assignment.assigned_group != 'APPLICANT' or not assignment.remarks \
                    or assignment.remarks.lower() == 'undefined':
                continue
            notifications.append({
                'id': assignment.id,
                'target': applicant.tracking_number,
                'description': assignment.remarks,
                'date': assignment.created_at.isoformat()[:19],
                'link': f"spuid-signup/{applicant.id}/",
            })

    notifications.sort(key=lambda item: item['date'], reverse=True)
    return notifications


class NotificationListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(notifications_for(request.user))


class NotificationCountView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({'count': len(notifications_for(request.user))})


class SearchView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        query = (request.query_params.get('query') or '').strip()
        if not query:
            return Response({'error': 'query is required'}, status=status.HTTP_400_BAD_REQUEST)

        applicants = scope_applicants(request.user, {})
        applications = applicants.filter(
            Q(tracking_number__icontains=query) |
            Q(first_name__icontains=query) |
            Q(last_name__icontains=query) |
            Q(cnic__icontains=query) |
            Q(mobile_no__icontains=query)
        ).order_by('-id')[:SEARCH_LIMIT]

        businesses = BusinessProfile.objects.filter(applicant__in=applicants).filter(
            Q(business_name__icontains=query) | Q(name__icontains=query)
        ).select_related('applicant', 'district').order_by('-id')[:SEARCH_LIMIT]

        return Response({
            'Applications': [{
                'id': applicant.id,
                'tracking_number': applicant.tracking_number,
                'name': applicant.full_name,
                'cnic': applicant.cnic,
                'registration_for': applicant.registration_for,
                'assigned_group': applicant.assigned_group,
                'application_status': applicant.application_status,
            } for applicant in applications],
            'Businesses': [{
                'id': profile.id,
                'applicant_id': profile.applicant_id,
                'tracking_number': profile.tracking_number,
                'business_name': profile.business_name or profile.name,
                'district': profile.district.district_name if profile.district else None,
            } for profile in businesses],
        })
