import logging
import os
from collections import OrderedDict
from io import BytesIO

from django.conf import settings
from django.db.models import Case, Count, IntegerField, Q, Value, When
from django.http import FileResponse, Http404, HttpResponse
from django.shortcuts import get_object_or_404
from openpyxl import Workbook
from openpyxl.drawing.image import Image as OpenpyxlImage
from reportlab.lib.pagesizes import A5
from reportlab.pdfgen import canvas
from rest_framework import permissions, serializers, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from licensing.controllers.bank_chalan import qr_image_reader
from licensing.controllers.reports import beautify_header, excel_value, style_header_row, table_pdf_response, \
    workbook_response
from licensing.custom_permissions import IsInAnalytics1Group, IsOwnerOrAdmin, user_group_names
from licensing.models import *
from licensing.models_choices import FEE_VERIFICATION_DOCUMENT, PMC_GROUPS, REVIEW_GROUPS, USER_GROUPS, USER_GROUPS_DO
from licensing.serializers import *
from licensing.services.alerts import AlertService
from licensing.services.audit import log_access
from licensing.services.cache import get_cache, invalidate_applicant, invalidate_business_profile, \
    invalidate_inspection_reports
from licensing.services.fees import settle_oldest_fee
from licensing.services.geo import feature, feature_collection
from licensing.services.licenses import create_or_update_license
from licensing.utils import media_download_url

logger = logging.getLogger(__name__)

STATISTICS_TTL = 300
DISTRICTS_TTL = 3600
HELPLINE = "For further details, call helpline 1373."


def user_district(user):
    profile = UserProfile.objects.filter(user=user).select_related('district').first()
    return profile.district if profile else None


def lso_applicant_ids(suffix):
    """Applicants whose submission id falls in the round-robin slot of ``lso.<suffix>``."""
    return [
        applicant_id
        for submitted_id, applicant_id in ApplicationSubmitted.objects.values_list('id', 'applicant_id')
        if (submitted_id - suffix) % 3 == 0
    ]


def scope_applicants(user, params):
    """Applications a user may see, by role."""
    user_groups = user_group_names(user)
    matching_groups = user_groups.intersection(REVIEW_GROUPS)
    username = user.username.lower()

    if "Super" in user_groups:
        queryset = ApplicantDetail.objects.all()
        assigned_group = params.get("assigned_group")
        if assigned_group:
            queryset = queryset.filter(assigned_group=assigned_group)
        application_status = params.get("application_status")
        if application_status:
            queryset = queryset.filter(application_status=application_status)
        return queryset

    if "LSO" in matching_groups and username.startswith("lso."):
        try:
            user_suffix = int(username.split(".")[1])
        except (IndexError, ValueError):
            return ApplicantDetail.objects.none()
        return ApplicantDetail.objects.filter(
            assigned_group__in=["LSO", "APPLICANT"],
            id__in=lso_applicant_ids(user_suffix),
        )

    if "DO" in matching_groups and username.startswith("do."):
        district_code = username.split(".", 1)[1].upper()
        if not district_code:
            return ApplicantDetail.objects.none()
        return ApplicantDetail.objects.filter(
            assigned_group="DO",
            businessprofile__district__short_name=district_code,
        )

    if matching_groups:
        return ApplicantDetail.objects.filter(assigned_group__in=matching_groups)

    return ApplicantDetail.objects.filter(created_by=user)


class ApplicantDetailViewSet(viewsets.ModelViewSet):
    serializer_class = ApplicantDetailSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]

    def get_queryset(self):
        return scope_applicants(self.request.user, self.request.query_params).order_by('-id')

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    def destroy(self, request, *args, **kwargs):
        """Only superusers may delete applications."""
        self.get_object()
        if not request.user.is_superuser:
            return Response(
                {'detail': 'You do not have permission to delete this record.'},
                status=status.HTTP_403_FORBIDDEN
            )
        return super().destroy(request, *args, **kwargs)

    def perform_update(self, serializer):
        serializer.validated_data.pop('tracking_hash', None)
        instance = serializer.save()
        invalidate_applicant(instance.pk)
        create_or_update_license(instance, user=self.request.user)

    def retrieve(self, request, *args, **kwargs):
        instance = self.get_object()
        log_access(request=request, model_name='ApplicantDetail', object_id=instance.id)
        serializer = self.get_serializer(instance)
        return Response(serializer.data)

    def list(self, request, *args, **kwargs):
        log_access(request=request, model_name='ApplicantDetail', object_id='LIST')
        return super().list(request, *args, **kwargs)


class ApplicantDetailMainListViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = ApplicantDetailMainListSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        if "Super" not in user_group_names(self.request.user):
            return ApplicantDetail.objects.none()

        queryset = ApplicantDetail.objects.all().order_by('-id')
        assigned_group = self.request.query_params.get("assigned_group")
        if assigned_group == 'Submitted':
            queryset = queryset.filter(submittedapplication__isnull=False)
        elif assigned_group == 'PMC':
            queryset = queryset.filter(assigned_group__in=PMC_GROUPS)
        elif assigned_group:
            queryset = queryset.filter(assigned_group=assigned_group)

        application_status = self.request.query_params.get("application_status")
        if application_status:
            queryset = queryset.filter(application_status=application_status)
        return queryset


class ApplicantDetailMainDOListViewSet(viewsets.ReadOnlyModelViewSet):
    """Applications in the district of a DO user's profile."""
    serializer_class = ApplicantDetailMainListSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        user = self.request.user
        if "DO" not in user_group_names(user):
            return ApplicantDetail.objects.none()

        district = user_district(user)
        if district is None:
            logger.warning("DO user %s has no district on the profile", user.username)
            return ApplicantDetail.objects.none()

        queryset = ApplicantDetail.objects.filter(businessprofile__district=district).order_by('-id')
        assigned_group = self.request.query_params.get("assigned_group")
        if assigned_group:
            queryset = queryset.filter(assigned_group=assigned_group)
        application_status = self.request.query_params.get("application_status")
        if application_status:
            queryset = queryset.filter(application_status=application_status)
        return queryset


class ApplicantManualFieldsViewSet(viewsets.ModelViewSet):
    queryset = ApplicantManualFields.objects.all()
    serializer_class = ApplicantManualFieldsSerializer
    permission_classes = [permissions.IsAuthenticated]

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    def perform_update(self, serializer):
        serializer.save(updated_by=self.request.user)


class ApplicantFieldResponseViewSet(viewsets.ModelViewSet):
    serializer_class = ApplicantFieldResponseSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = ApplicantFieldResponse.objects.all()
        applicant_id = self.request.query_params.get('applicant_id')
        if applicant_id:
            queryset = queryset.filter(applicant_id=applicant_id)
        return queryset

    def create(self, request, *args, **kwargs):
        """Accepts a single response or a list of them."""
        is_bulk = isinstance(request.data, list)
        serializer = self.get_serializer(data=request.data, many=is_bulk)
        serializer.is_valid(raise_exception=True)
        serializer.save(created_by=self.request.user)
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class ApplicantUpsertMixin:
    """
    POST creates the applicant's record or, when one already exists,
    updates it in place.
    """
    upsert_model = None

    def save_kwargs(self, created):
        if created:
            return {'created_by': self.request.user}
        return {}

    def create(self, request, *args, **kwargs):
        applicant_id = request.data.get('applicant')
        if not applicant_id:
            return Response({"error": "Applicant is required."}, status=status.HTTP_400_BAD_REQUEST)

        instance = self.upsert_model.objects.filter(applicant_id=applicant_id).first()
        if instance is None:
            serializer = self.get_serializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            serializer.save(**self.save_kwargs(created=True))
            response_status = status.HTTP_201_CREATED
        else:
            serializer = self.get_serializer(instance, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            serializer.save(**self.save_kwargs(created=False))
            response_status = status.HTTP_200_OK

        invalidate_applicant(applicant_id)
        return Response(serializer.data, status=response_status)


class BusinessProfileViewSet(ApplicantUpsertMixin, viewsets.ModelViewSet):
    queryset = BusinessProfile.objects.all()
    serializer_class = BusinessProfileSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]
    upsert_model = BusinessProfile

    def save_kwargs(self, created):
        kwargs = {'updated_by': self.request.user}
        if created:
            kwargs['created_by'] = self.request.user
        return kwargs

    def perform_update(self, serializer):
        instance = serializer.save(updated_by=self.request.user)
        invalidate_business_profile(instance.applicant_id)

    def destroy(self, request, *args, **kwargs):
        self.get_object()
        if not request.user.is_superuser:
            return Response({'detail': 'Only superusers can delete this record.'}, status=status.HTTP_403_FORBIDDEN)
        return super().destroy(request, *args, **kwargs)

    @action(detail=False, methods=['get'])
    def by_applicant(self, request):
        applicant_id = request.query_params.get('applicant_id')
        if not applicant_id:
            return Response({'error': 'applicant_id is required'}, status=status.HTTP_400_BAD_REQUEST)
        profile = get_object_or_404(BusinessProfile, applicant_id=applicant_id)
        return Response(self.get_serializer(profile).data)


class ProducerViewSet(ApplicantUpsertMixin, viewsets.ModelViewSet):
    queryset = Producer.objects.all()
    serializer_class = ProducerSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]
    upsert_model = Producer


class ConsumerViewSet(ApplicantUpsertMixin, viewsets.ModelViewSet):
    queryset = Consumer.objects.all()
    serializer_class = ConsumerSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]
    upsert_model = Consumer


class CollectorViewSet(ApplicantUpsertMixin, viewsets.ModelViewSet):
    queryset = Collector.objects.all()
    serializer_class = CollectorSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]
    upsert_model = Collector


class RecyclerViewSet(ApplicantUpsertMixin, viewsets.ModelViewSet):
    queryset = Recycler.objects.all()
    serializer_class = RecyclerSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]
    upsert_model = Recycler


class RawMaterialViewSet(viewsets.ModelViewSet):
    queryset = RawMaterial.objects.all()
    serializer_class = RawMaterialSerializer
    permission_classes = [permissions.IsAuthenticated]


class PlasticItemsViewSet(viewsets.ModelViewSet):
    queryset = PlasticItems.objects.all()
    serializer_class = PlasticItemsSerializer
    permission_classes = [permissions.IsAuthenticated]


class ProductsViewSet(viewsets.ModelViewSet):
    queryset = Products.objects.all()
    serializer_class = ProductsSerializer
    permission_classes = [permissions.IsAuthenticated]


class ByProductsViewSet(viewsets.ModelViewSet):
    queryset = ByProducts.objects.all()
    serializer_class = ByProductsSerializer
    permission_classes = [permissions.IsAuthenticated]


def cached_district_list():
    return get_cache().get_or_set(
        'districts:list',
        lambda: DistrictSerializer(District.objects.order_by('district_name'), many=True).data,
        DISTRICTS_TTL,
    )


class DistrictViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    queryset = District.objects.order_by('district_name')
    serializer_class = DistrictSerializer

    def list(self, request, *args, **kwargs):
        return Response(cached_district_list())


class DistrictPublicViewSet(DistrictViewSet):
    permission_classes = [AllowAny]


class DistrictGEOMViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [AllowAny]
    queryset = District.objects.filter(geom__isnull=False).order_by('district_name')
    serializer_class = DistrictGEOMSerializer

    def list(self, request, *args, **kwargs):
        features = [
            feature(district.geom, {
                'district_id': district.district_id,
                'district_name': district.district_name,
                'district_code': district.district_code,
            })
            for district in self.get_queryset()
        ]
        return Response(feature_collection(features))


class TehsilViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Tehsil.objects.select_related('district').order_by('tehsil_name')
    serializer_class = TehsilSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        queryset = super().get_queryset()
        district_id = self.request.query_params.get('district_id')
        if district_id:
            queryset = queryset.filter(district_id=district_id)
        return queryset


class DistrictByLatLonSet(APIView):
    """District containing a latitude/longitude pair."""
    permission_classes = [AllowAny]

    def get(self, request):
        lat = request.query_params.get('lat')
        lon = request.query_params.get('lon')

        if not lat or not lon:
            return Response({"error": "Latitude and longitude are required."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            lat, lon = float(lat), float(lon)
        except ValueError:
            return Response({"error": "Invalid latitude or longitude format."}, status=status.HTTP_400_BAD_REQUEST)

        district = District.get_district_by_coordinates(lat, lon)
        if district is None:
            return Response({"error": "District not found for the given coordinates."},
                            status=status.HTTP_404_NOT_FOUND)

        return Response({
            "district_id": district.district_id,
            "district_name": district.district_name,
            "short_name": district.short_name,
        })


class UserGroupsViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = GroupSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return self.request.user.groups.all()

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['user'] = self.request.user
        return context


class ApplicationAssignmentViewSet(viewsets.ModelViewSet):
    serializer_class = ApplicationAssignmentSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]

    def get_queryset(self):
        return ApplicationAssignment.objects.all().order_by('-created_at')

    @action(detail=False, methods=['get'])
    def by_applicant(self, request):
        applicant_id = request.query_params.get('applicant_id')
        if not applicant_id:
            return Response({'error': 'applicant_id is required'}, status=status.HTTP_400_BAD_REQUEST)
        assignments = ApplicationAssignment.objects.filter(applicant_id=applicant_id).order_by('created_at')
        return Response(self.get_serializer(assignments, many=True).data)

    def create(self, request, *args, **kwargs):
        applicant_id = request.data.get('applicant')
        if not applicant_id:
            return Response({"error": "Applicant is required."}, status=status.HTTP_400_BAD_REQUEST)
        return super().create(request, *args, **kwargs)

    def perform_create(self, serializer):
        instance = serializer.save(created_by=self.request.user)
        applicant = instance.applicant

        applicant.assigned_group = instance.assigned_group
        applicant.application_status = 'In Process'
        applicant.save()
        logger.info("Applicant %s assigned to %s by %s", applicant.pk, instance.assigned_group,
                    self.request.user.username)

        if instance.assigned_group == 'APPLICANT' and instance.remarks and instance.remarks != 'undefined':
            AlertService().create_alert(
                applicant=applicant,
                alert_type='DOCUMENT_REQUIRED',
                title='Action required on your application',
                message=instance.remarks,
                priority='HIGH',
                metadata={'assignment_id': instance.pk},
            )

        create_or_update_license(applicant, user=self.request.user)
        invalidate_applicant(applicant.pk)


class ApplicantDocumentsViewSet(viewsets.ModelViewSet):
    permission_classes = [permissions.IsAuthenticated]
    queryset = ApplicantDocuments.objects.all()
    serializer_class = ApplicantDocumentsSerializer
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def create(self, request, *args, **kwargs):
        document_description = request.data.get("document_description")
        applicant_id = request.data.get("applicant")
        document = request.data.get("document")

        if not applicant_id or not document_description or not document:
            return Response({'error': 'Missing required fields'}, status=status.HTTP_400_BAD_REQUEST)

        applicant = get_object_or_404(ApplicantDetail, id=applicant_id)
        document_instance = ApplicantDocuments.objects.create(
            applicant=applicant,
            document=document,
            document_description=document_description,
            created_by=request.user,
        )

        if document_description == FEE_VERIFICATION_DOCUMENT:
            settled = settle_oldest_fee(applicant)
            if settled is not None:
                logger.info("Fee %s of applicant %s settled by treasury verification", settled.pk, applicant.pk)

        invalidate_applicant(applicant.pk)
        serializer = self.get_serializer(document_instance)
        return Response(serializer.data, status=status.HTTP_201_CREATED)


def group_statistics(user):
    """Counts per workflow group; Super users also get the submission buckets."""
    user_groups = user_group_names(user)
    if not user_groups:
        return {}

    allowed_groups = [group[0] for group in USER_GROUPS]
    counts = dict(
        ApplicantDetail.objects.filter(assigned_group__in=allowed_groups)
        .values_list('assigned_group')
        .annotate(count=Count('id'))
    )

    if "Super" in user_groups:
        result = OrderedDict((group, 0) for group in ["All-Applications", "Challan-Downloaded", "Submitted", "PMC"])
        result.update((group, 0) for group in allowed_groups)
        result["All-Applications"] = ApplicantDetail.objects.count()
        result["Challan-Downloaded"] = ApplicantDetail.objects.filter(application_status="Fee Challan").count()
        result["Submitted"] = ApplicationSubmitted.objects.count()

        buckets = {1: [], 2: [], 0: []}
        for submitted_id, applicant_id in ApplicationSubmitted.objects.values_list('id', 'applicant_id'):
            buckets[submitted_id % 3].append(applicant_id)
        lso = ApplicantDetail.objects.filter(assigned_group='LSO')
        result["LSO1"] = lso.filter(id__in=buckets[1]).count()
        result["LSO2"] = lso.filter(id__in=buckets[2]).count()
        result["LSO3"] = lso.filter(id__in=buckets[0]).count()
    else:
        result = OrderedDict((group, 0) for group in allowed_groups if group in user_groups)

    for group, count in counts.items():
        if group in result:
            result[group] = count

    if "Super" in user_groups:
        result["PMC"] = sum(counts.get(group, 0) for group in PMC_GROUPS)
    return result


class FetchStatisticsViewSet(viewsets.ViewSet):
    """Application counts for the dashboard tiles."""
    permission_classes = [IsAuthenticated]

    def list(self, request):
        key = f"statistics:groups:{request.user.pk}"
        return Response(get_cache().get_or_set(key, lambda: group_statistics(request.user), STATISTICS_TTL))


class FetchStatisticsDOViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def list(self, request):
        if not request.user.groups.exists():
            return Response({})

        username = request.user.username
        district_short_name = username.split('.', 1)[1].upper() if '.' in username else None
        if district_short_name:
            district = District.objects.filter(short_name__iexact=district_short_name).first()
        else:
            district = user_district(request.user)
        if district is None:
            return Response({"error": "No matching district found for the user."}, status=status.HTTP_400_BAD_REQUEST)

        statistics = (
            ApplicantDetail.objects
            .filter(businessprofile__district=district)
            .exclude(assigned_group__isnull=True)
            .exclude(assigned_group="")
            .values_list('assigned_group')
            .annotate(count=Count('id'))
        )
        result = OrderedDict((group[0], 0) for group in USER_GROUPS_DO)
        for group, count in statistics:
            if group in result:
                result[group] = count
        return Response(result)


OPEN = ~Q(application_status__in=['Created', 'Completed', 'Rejected', 'Fee Challan'])


def applicant_statistics():
    district_statistics = ApplicantDetail.objects.exclude(
        application_status__in=['Created', 'Fee Challan']
    ).values('registration_for', 'businessprofile__district__district_name') \
        .annotate(count=Count('id')) \
        .order_by('businessprofile__district__district_name')

    registration_statistics = ApplicantDetail.objects \
        .exclude(registration_for__isnull=True) \
        .values('registration_for') \
        .annotate(
            Applications=Count('id', filter=~Q(application_status__in=['Created', 'Fee Challan'])),
            DO=Count('id', filter=OPEN & Q(assigned_group='DO')),
            PMC=Count('id', filter=OPEN & ~Q(assigned_group__in=['DO', 'APPLICANT'])),
            APPLICANT=Count('id', filter=OPEN & Q(assigned_group='APPLICANT')),
            Licenses=Count('id', filter=Q(application_status='Completed')),
        ) \
        .order_by(
            Case(
                When(registration_for='Producer', then=Value(1)),
                When(registration_for='Consumer', then=Value(2)),
                When(registration_for='Collector', then=Value(3)),
                When(registration_for='Recycler', then=Value(4)),
                default=Value(5), output_field=IntegerField()
            )
        )
    registration_statistics = list(registration_statistics)

    total_row = {'registration_for': 'Total'}
    for key in ['Applications', 'DO', 'PMC', 'APPLICANT', 'Licenses']:
        total_row[key] = sum(row[key] for row in registration_statistics)
    registration_statistics.insert(0, total_row)

    grid_data = ApplicantDetail.objects.values(
        'id',
        'first_name',
        'last_name',
        'cnic',
        'mobile_no',
        'application_status',
        'tracking_number',
        'assigned_group',
        'registration_for',
        'businessprofile__district__district_name',
    ).exclude(application_status__in=['Created', 'Fee Challan']).order_by('id')

    return {
        'district_data': list(district_statistics),
        'grid_data': list(grid_data),
        'registration_statistics': registration_statistics,
    }


class ApplicantStatisticsView(APIView):
    permission_classes = [IsAuthenticated, IsInAnalytics1Group]

    def get(self, request):
        return Response(applicant_statistics())


class MISApplicantStatisticsView(APIView):
    """Public variant of the applicant statistics, served from the cache."""
    permission_classes = [AllowAny]

    def get(self, request):
        return Response(get_cache().get_or_set('statistics:mis', applicant_statistics, STATISTICS_TTL))


def serve_media(*parts):
    media_root = os.path.realpath(settings.MEDIA_ROOT)
    file_path = os.path.realpath(os.path.join(media_root, 'media', *parts))
    if not file_path.startswith(media_root + os.sep) or not os.path.isfile(file_path):
        raise Http404("File does not exist")

    response = FileResponse(open(file_path, "rb"), as_attachment=False)
    response["Content-Disposition"] = f'inline; filename="{parts[-1]}"'
    return response


def download_file(request, folder_name, file_name):
    return serve_media(folder_name, file_name)


def download_file2(request, folder_name, folder_name2, file_name):
    return serve_media(folder_name, folder_name2, file_name)


class ApplicantAlertsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        applicants = ApplicantDetail.objects.filter(
            created_by=request.user,
            assigned_group__in=['APPLICANT', 'Download License']
        )

        assignments = ApplicationAssignment.objects.filter(
            applicant__in=applicants,
            assigned_group='APPLICANT',
            remarks__isnull=False,
        ).exclude(remarks__iexact='undefined').select_related('applicant').order_by('-created_at')

        data = ApplicantAlertsSerializer(assignments, many=True).data

        for applicant in applicants.filter(assigned_group="Download License"):
            tracking_number = applicant.tracking_number or "N/A"
            data.append({
                "applicant_id": applicant.id,
                "tracking_number": applicant.tracking_number,
                "assigned_group": "Download License",
                "remarks": f"Please Download License [{tracking_number}]",
                "created_at": applicant.updated_at.isoformat()[:19],
                "url_sub_part": "/home-license",
            })

        return Response(data)


def tracking_message(application):
    tracking_number = application.tracking_number
    assigned_group = (application.assigned_group or "").strip()
    prefix = f"The application with Tracking Number '{tracking_number}'"

    if not assigned_group:
        return f"{prefix} is in draft form. Please complete it. {HELPLINE}"
    if assigned_group in PMC_GROUPS:
        return f"{prefix} is with the Plastic Management Cell and is being processed. {HELPLINE}"
    if assigned_group == 'DO':
        return f"{prefix} is with the Environment Officer District Incharge. {HELPLINE}"
    if assigned_group == 'APPLICANT':
        assignment = ApplicationAssignment.objects.filter(applicant=application).order_by('-created_at').first()
        comment = assignment.remarks if assignment and assignment.remarks and assignment.remarks != 'undefined' \
            else "No reason provided."
        return f"{prefix} has been reassigned to the applicant. Reason: {comment}. {HELPLINE}"
    if assigned_group == 'DEO':
        return f"{prefix} is with the Designated Environmental Officer. {HELPLINE}"
    if assigned_group == 'DG':
        return f"{prefix} is with the DG, EPA. {HELPLINE}"
    if assigned_group == 'Download License':
        return (f"{prefix} has been processed and the license is ready for download. "
                f"You can download the license from your My Applications Dashboard. {HELPLINE}")
    return f"{prefix} has an unknown status. Please contact support. {HELPLINE}"


class TrackApplicationView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        tracking_number = request.GET.get('tracking_number')
        if not tracking_number:
            return Response({"message": f"Tracking number is required. {HELPLINE}"},
                            status=status.HTTP_400_BAD_REQUEST)

        application = ApplicantDetail.objects.filter(tracking_number=tracking_number).first()
        if application is None:
            return Response(
                {"message": f"No application found for the provided Tracking Number '{tracking_number}'. "
                            f"{HELPLINE}"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response({"message": tracking_message(application)})


class ApplicantLocationViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = (
        ApplicantDetail.objects
        .select_related('businessprofile__district', 'businessprofile__tehsil', 'manual_fields')
        .filter(manual_fields__latitude__isnull=False, manual_fields__longitude__isnull=False)
    )
    serializer_class = ApplicantLocationSerializer
    permission_classes = [AllowAny]


class DistrictPlasticStatsViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [AllowAny]
    queryset = District.objects.order_by('district_name')
    serializer_class = DistrictPlasticStatsSerializer


SUMMARY_COUNTERS = [
    'total_inspections', 'total_notices_issued', 'total_plastic_bags_confiscated', 'total_confiscated_plastic',
    'total_firs_registered', 'total_premises_sealed', 'total_complaints_filed', 'total_fine_amount',
    'total_fine_recovered', 'pending_fine_amount', 'total_fines_pending', 'total_fines_partial',
    'total_fines_recovered', 'total_de_sealed_premises', 'total_affidavits_uploaded',
]


def action_list(value):
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def inspection_summary(queryset):
    """
    Per-district inspection KPIs. Action counts are taken from the JSON
    ``action_taken`` list in Python so every database backend agrees.
    """
    summary = OrderedDict()
    for report in queryset.select_related('district').order_by('district__district_name', 'id'):
        name = report.district.district_name if report.district else None
        row = summary.get(name)
        if row is None:
            row = summary[name] = OrderedDict([('district', name)] + [(key, 0) for key in SUMMARY_COUNTERS])

        actions = action_list(report.action_taken)
        fine_amount = report.fine_amount or 0
        recovered = report.recovery_amount or 0

        row['total_inspections'] += 1
        row['total_notices_issued'] += 1 if report.violation_found is not None else 0
        row['total_plastic_bags_confiscated'] += report.plastic_bags_confiscation or 0
        row['total_confiscated_plastic'] += report.total_confiscation or 0
        row['total_firs_registered'] += 1 if 'FIR' in actions else 0
        row['total_premises_sealed'] += 1 if 'Sealed' in actions else 0
        row['total_complaints_filed'] += 1 if 'Complaint' in actions else 0
        row['total_fine_amount'] += fine_amount
        row['total_fine_recovered'] += recovered
        row['pending_fine_amount'] += fine_amount - recovered
        row['total_fines_pending'] += 1 if report.fine_recovery_status == 'Pending' else 0
        row['total_fines_partial'] += 1 if report.fine_recovery_status == 'Partial' else 0
        row['total_fines_recovered'] += 1 if report.fine_recovery_status == 'Recovered' else 0
        row['total_de_sealed_premises'] += 1 if report.de_sealed_date else 0
        row['total_affidavits_uploaded'] += 1 if report.affidavit else 0
    return list(summary.values())


INSPECTION_EXPORT_FIELDS = [
    'id', 'district__district_name', 'business_name', 'business_type', 'inspection_date', 'violation_found',
    'plastic_bags_confiscation', 'total_confiscation', 'action_taken', 'fine_amount', 'recovery_amount',
    'fine_recovery_status', 'de_sealed_date', 'affidavit',
]


def add_logo(ws):
    logo_path = os.path.join(settings.MEDIA_ROOT, 'logo', 'logo-light-full.png')
    if not os.path.exists(logo_path):
        return False
    logo = OpenpyxlImage(logo_path)
    logo.width = 300
    logo.height = 100
    ws.add_image(logo, "A1")
    return True


def sheet_with_table(title, headers, rows, fill_color):
    """A workbook whose table starts under the logo rows at row 6."""
    wb = Workbook()
    ws = wb.active
    ws.title = title
    add_logo(ws)
    for _ in range(5):
        ws.append([])
    ws.append(headers)
    for row in rows:
        ws.append([excel_value(value) for value in row])
    style_header_row(ws, 6, fill_color=fill_color)
    return wb


class InspectionReportViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = InspectionReportSerializer
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get_queryset(self):
        """Reports of the user's district, or every report for users without one."""
        district = user_district(self.request.user)
        if district is not None:
            return InspectionReport.objects.filter(district=district).order_by('-created_at')
        return InspectionReport.objects.all().order_by('-created_at')

    def perform_create(self, serializer):
        district = user_district(self.request.user)
        if district is not None:
            serializer.save(created_by=self.request.user, district=district)
        else:
            serializer.save(created_by=self.request.user)
        invalidate_inspection_reports()

    def perform_update(self, serializer):
        serializer.save()
        invalidate_inspection_reports()

    def perform_destroy(self, instance):
        instance.delete()
        invalidate_inspection_reports()

    @action(detail=False, methods=['get'])
    def district_summary(self, request):
        summary = inspection_summary(self.get_queryset())
        return Response(DistrictSummarySerializer(summary, many=True).data)

    def _summary_table(self):
        summary = inspection_summary(self.get_queryset())
        headers = ['District Name'] + [beautify_header(key) for key in SUMMARY_COUNTERS]
        rows = [list(row.values()) for row in summary]
        return headers, rows

    def _inspection_table(self):
        records = list(self.get_queryset().values(*INSPECTION_EXPORT_FIELDS))
        headers = [beautify_header(field).replace('District Name', 'District') for field in INSPECTION_EXPORT_FIELDS]
        rows = [[record[field] for field in INSPECTION_EXPORT_FIELDS] for record in records]
        return headers, rows

    @action(detail=False, methods=['get'], url_path='export-district-summary-excel')
    def export_district_summary_excel(self, request):
        headers, rows = self._summary_table()
        wb = sheet_with_table("District Summary", headers, rows, 'B7DEE8')
        return workbook_response(wb, "district_summary.xlsx")

    @action(detail=False, methods=['get'], url_path='export-district-summary-pdf')
    def export_district_summary_pdf(self, request):
        headers, rows = self._summary_table()
        return table_pdf_response("District-wise Inspection Summary", headers, rows, "district_summary.pdf")

    @action(detail=False, methods=['get'], url_path='export-all-inspections-excel')
    def export_all_inspections_excel(self, request):
        headers, rows = self._inspection_table()
        wb = sheet_with_table("All Inspections", headers, rows, 'D9EAD3')
        return workbook_response(wb, "all_inspections.xlsx")

    @action(detail=False, methods=['get'], url_path='export-all-inspections-pdf')
    def export_all_inspections_pdf(self, request):
        headers, rows = self._inspection_table()
        return table_pdf_response("All Inspection Reports", headers, rows, "all_inspections.pdf")

    @action(detail=False, methods=['get'])
    def all_other_single_use_plastics(self, request):
        snapshot, created = SingleUsePlasticsSnapshot.objects.get_or_create(id=1)
        return Response({"single_use_plastic_items": snapshot.plastic_items})


class DistrictPlasticCommitteeDocumentViewSet(viewsets.ModelViewSet):
    serializer_class = DistrictPlasticCommitteeDocumentSerializer
    permission_classes = [permissions.IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get_queryset(self):
        district = user_district(self.request.user)
        queryset = DistrictPlasticCommitteeDocument.objects.select_related('district', 'uploaded_by')
        if district is not None:
            queryset = queryset.filter(district=district)

        district_id = self.request.query_params.get('district_id')
        if district_id:
            queryset = queryset.filter(district_id=district_id)
        document_type = self.request.query_params.get('document_type')
        if document_type:
            queryset = queryset.filter(document_type=document_type)
        return queryset.order_by('-uploaded_at')

    def perform_create(self, serializer):
        district = user_district(self.request.user)
        if district is None:
            raise serializers.ValidationError("User does not have an assigned district.")
        serializer.save(uploaded_by=self.request.user, district=district)

    @action(detail=False, methods=['get'])
    def download_latest_document(self, request):
        document = self.get_queryset().order_by('-document_date', '-uploaded_at').first()
        if document is None or not document.document:
            raise Http404("No document found.")
        return FileResponse(document.document.open('rb'), as_attachment=True,
                            filename=os.path.basename(document.document.name))


class CompetitionRegistrationViewSet(viewsets.ModelViewSet):
    queryset = CompetitionRegistration.objects.all().order_by('-created_at')
    serializer_class = CompetitionRegistrationSerializer
    parser_classes = [MultiPartParser, FormParser]

    def get_permissions(self):
        if self.action == 'create':
            return [AllowAny()]
        return [IsAuthenticated()]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        registration = serializer.save()
        logger.info("Competition registration %s created", registration.registration_id)
        return Response({"success": True, "registration_id": registration.registration_id},
                        status=status.HTTP_201_CREATED)


def render_courier_label(registration):
    width, height = A5
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A5)

    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(width / 2, height - 50, "Plastic Awareness Competition")
    c.setFont("Helvetica", 11)
    c.drawCentredString(width / 2, height - 68, "Courier Label")

    lines = [
        ("Registration ID", registration.registration_id),
        ("Student Name", registration.full_name or ""),
        ("Class", registration.grade or "N/A"),
        ("Institution", registration.institute or "N/A"),
        ("Mobile", registration.mobile),
        ("Competition", registration.get_competition_type_display()),
    ]
    y = height - 120
    for label, value in lines:
        c.setFont("Helvetica-Bold", 11)
        c.drawString(40, y, f"{label}:")
        c.setFont("Helvetica", 11)
        c.drawString(150, y, str(value))
        y -= 24

    c.drawImage(qr_image_reader(registration.registration_id, box_size=8), width / 2 - 60, 60, width=120, height=120)
    c.showPage()
    c.save()
    return buffer.getvalue()


@api_view(['GET'])
@permission_classes([AllowAny])
def generate_courier_label(request):
    registration_id = request.GET.get("registration_id")
    if not registration_id:
        return Response({"error": "registration_id is required"}, status=status.HTTP_400_BAD_REQUEST)

    registration = CompetitionRegistration.objects.filter(registration_id=registration_id).first()
    if registration is None:
        return Response({"error": "Registration not found."}, status=status.HTTP_404_NOT_FOUND)

    response = HttpResponse(render_courier_label(registration), content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="courier_label_{registration.registration_id}.pdf"'
    return response


@api_view(['GET'])
def confiscation_lookup(request):
    report = InspectionReport.objects.filter(
        receipt_book_number=request.GET.get('book_no'),
        receipt_number=request.GET.get('receipt_no'),
    ).first()
    if report is None:
        return Response({"error": "Record not found."}, status=status.HTTP_404_NOT_FOUND)

    return Response({
        "total_confiscation": report.total_confiscation,
        "receipt_book_number": report.receipt_book_number,
        "receipt_number": report.receipt_number,
        "receipt_url": media_download_url(request, report.confiscation_receipt),
    })
