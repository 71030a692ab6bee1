from django.contrib.auth.models import Group
from django.db.models import Sum
from django.utils.timezone import localtime
from rest_framework import serializers

from licensing.models import *
from licensing.utils import media_download_url


def to_float(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class PlasticItemsSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlasticItems
        fields = '__all__'


class ProductsSerializer(serializers.ModelSerializer):
    class Meta:
        model = Products
        fields = '__all__'


class ByProductsSerializer(serializers.ModelSerializer):
    class Meta:
        model = ByProducts
        fields = '__all__'


class RawMaterialSerializer(serializers.ModelSerializer):
    class Meta:
        model = RawMaterial
        fields = '__all__'


class ProducerSerializer(serializers.ModelSerializer):
    raw_materials = RawMaterialSerializer(many=True, read_only=True)

    class Meta:
        model = Producer
        fields = '__all__'
        read_only_fields = ['created_by']


class ConsumerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Consumer
        fields = '__all__'
        read_only_fields = ['created_by', 'updated_by', 'updated_at']


class CollectorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Collector
        fields = '__all__'
        read_only_fields = ['created_by', 'updated_by', 'updated_at']


class RecyclerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Recycler
        fields = '__all__'
        read_only_fields = ['created_by', 'updated_by', 'updated_at']


class ApplicantDocumentsSerializer(serializers.ModelSerializer):
    applicant = serializers.PrimaryKeyRelatedField(queryset=ApplicantDetail.objects.all())

    class Meta:
        model = ApplicantDocuments
        fields = '__all__'
        read_only_fields = ['created_by', 'updated_by', 'created_at', 'updated_at']

    def to_representation(self, instance):
        representation = super().to_representation(instance)
        if instance.document:
            representation["document"] = media_download_url(self.context.get("request"), instance.document)
        return representation


class ApplicationSubmittedSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplicationSubmitted
        fields = '__all__'


class DistrictSerializer(serializers.ModelSerializer):
    class Meta:
        model = District
        fields = ['district_id', 'district_name', 'short_name']


class DistrictGEOMSerializer(serializers.ModelSerializer):
    class Meta:
        model = District
        fields = ['district_id', 'district_name', 'district_code', 'geom']


class TehsilSerializer(serializers.ModelSerializer):
    district = DistrictSerializer()

    class Meta:
        model = Tehsil
        fields = ['tehsil_id', 'tehsil_name', 'tehsil_code', 'district']


class BusinessProfileSerializer(serializers.ModelSerializer):
    district_name = serializers.ReadOnlyField(source="district.district_name")
    tehsil_name = serializers.ReadOnlyField(source="tehsil.tehsil_name")

    class Meta:
        model = BusinessProfile
        fields = '__all__'
        read_only_fields = ['updated_by', 'updated_at', 'created_by', 'tracking_number']


class ApplicationAssignmentSerializer(serializers.ModelSerializer):
    applicant = serializers.PrimaryKeyRelatedField(queryset=ApplicantDetail.objects.all())
    created_by = serializers.StringRelatedField(read_only=True)
    created_by_group = serializers.SerializerMethodField()

    class Meta:
        model = ApplicationAssignment
        fields = '__all__'
        read_only_fields = ['created_by', 'updated_by', 'created_at', 'updated_at']

    def get_created_by_group(self, obj):
        """The group named like the user when there is one, else the user's first group."""
        user = obj.created_by
        if user is None:
            return None
        user_groups = list(user.groups.values_list('name', flat=True))
        matching_group = next((g for g in user_groups if g.lower() == user.username.lower()), None)
        return matching_group or (user_groups[0] if user_groups else None)


class ApplicantFieldResponseSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplicantFieldResponse
        fields = '__all__'
        read_only_fields = ['created_by', 'created_at']


class ApplicantFeeSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplicantFee
        fields = '__all__'


class ApplicantManualFieldsSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplicantManualFields
        fields = '__all__'
        read_only_fields = ['created_by', 'updated_by', 'created_at', 'updated_at']


class PSIDTrackingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PSIDTracking
        fields = ['consumer_number', 'payment_status', 'amount_paid', 'paid_date', 'paid_time', 'bank_code']


class ApplicantDetailSerializer(serializers.ModelSerializer):
    businessprofile = BusinessProfileSerializer(read_only=True)
    producer = ProducerSerializer(read_only=True)
    consumer = ConsumerSerializer(read_only=True)
    collector = CollectorSerializer(read_only=True)
    recycler = RecyclerSerializer(read_only=True)
    applicationassignment = serializers.SerializerMethodField()
    applicationdocument = ApplicantDocumentsSerializer(many=True, read_only=True)
    submittedapplication = ApplicationSubmittedSerializer(read_only=True)
    field_responses = ApplicantFieldResponseSerializer(many=True, read_only=True)
    applicantfees = ApplicantFeeSerializer(many=True, read_only=True)
    manual_fields = ApplicantManualFieldsSerializer(read_only=True)
    has_identity_document = serializers.SerializerMethodField()
    has_fee_challan = serializers.SerializerMethodField()
    is_downloaded_fee_challan = serializers.SerializerMethodField()
    psid_tracking = serializers.SerializerMethodField()
    total_fee_amount = serializers.SerializerMethodField()
    verified_fee_amount = serializers.SerializerMethodField()

    class Meta:
        model = ApplicantDetail
        fields = '__all__'
        read_only_fields = ['created_by', 'created_at', 'updated_at', 'tracking_number']

    def get_has_identity_document(self, obj):
        return obj.applicationdocument.filter(document_description=IDENTITY_DOCUMENT).exists()

    def get_has_fee_challan(self, obj):
        return obj.applicationdocument.filter(document_description='Fee Challan').exists() or \
            obj.psid_tracking.filter(payment_status='PAID').exists()

    def get_is_downloaded_fee_challan(self, obj):
        return obj.applicantfees.exists() and not obj.psid_tracking.exists()

    def get_psid_tracking(self, obj):
        """Only PSIDs that have been paid."""
        return PSIDTrackingSerializer(obj.psid_tracking.filter(payment_status='PAID'), many=True).data

    def get_applicationassignment(self, obj):
        return ApplicationAssignmentSerializer(obj.applicationassignment.order_by('created_at'), many=True).data

    def get_total_fee_amount(self, obj):
        return obj.applicantfees.aggregate(total=Sum('fee_amount'))['total'] or 0

    def get_verified_fee_amount(self, obj):
        return obj.applicantfees.filter(is_settled=True).aggregate(total=Sum('fee_amount'))['total'] or 0


class ApplicantDetailMainListSerializer(serializers.ModelSerializer):
    applicationassignment = ApplicationAssignmentSerializer(many=True, read_only=True)
    applicantfees = ApplicantFeeSerializer(many=True, read_only=True)
    submittedapplication = ApplicationSubmittedSerializer(read_only=True)
    created_by_username = serializers.SerializerMethodField()

    class Meta:
        model = ApplicantDetail
        fields = '__all__'
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def get_created_by_username(self, obj):
        return obj.created_by.username if obj.created_by else None


class LicenseSerializer(serializers.ModelSerializer):
    district_name = serializers.SerializerMethodField()
    tehsil_name = serializers.SerializerMethodField()
    city_name = serializers.SerializerMethodField()

    class Meta:
        model = License
        fields = '__all__'
        read_only_fields = ['created_by', 'created_at']

    def _business_profile(self, obj):
        cache = self.context.setdefault('_profiles', {})
        if obj.applicant_id not in cache:
            cache[obj.applicant_id] = BusinessProfile.objects.filter(
                applicant_id=obj.applicant_id).select_related('district', 'tehsil').first()
        return cache[obj.applicant_id]

    def get_district_name(self, obj):
        profile = self._business_profile(obj)
        return profile.district.district_name if profile and profile.district else None

    def get_tehsil_name(self, obj):
        profile = self._business_profile(obj)
        return profile.tehsil.tehsil_name if profile and profile.tehsil else None

    def get_city_name(self, obj):
        profile = self._business_profile(obj)
        return profile.city_town_village if profile else None

    def to_representation(self, instance):
        representation = super().to_representation(instance)
        representation['is_active'] = "Yes" if instance.is_active else "No"
        return representation


class ApplicantAlertsSerializer(serializers.ModelSerializer):
    tracking_number = serializers.CharField(source='applicant.tracking_number', read_only=True)
    applicant_id = serializers.IntegerField(source='applicant.id', read_only=True)
    created_at = serializers.SerializerMethodField()
    url_sub_part = serializers.SerializerMethodField()

    class Meta:
        model = ApplicationAssignment
        fields = ['id', 'applicant_id', 'tracking_number', 'remarks', 'created_at', 'url_sub_part']

    def get_created_at(self, obj):
        return obj.created_at.isoformat()[:19]

    def get_url_sub_part(self, obj):
        if obj.assigned_group == "Download License":
            return "/home-license"
        return f"spuid-signup/{obj.applicant.id}/"


class ApplicantLocationSerializer(serializers.ModelSerializer):
    district_name = serializers.CharField(source='businessprofile.district.district_name', read_only=True)
    district_id = serializers.CharField(source='businessprofile.district_id', read_only=True)
    tehsil_name = serializers.CharField(source='businessprofile.tehsil.tehsil_name', read_only=True)
    business_name = serializers.SerializerMethodField()
    postal_address = serializers.CharField(source='businessprofile.postal_address', read_only=True)
    latitude = serializers.DecimalField(source='manual_fields.latitude', max_digits=9, decimal_places=6,
                                        read_only=True)
    longitude = serializers.DecimalField(source='manual_fields.longitude', max_digits=9, decimal_places=6,
                                         read_only=True)
    category = serializers.SerializerMethodField()
    full_name = serializers.SerializerMethodField()
    material_flow_kg_per_day = serializers.SerializerMethodField()

    class Meta:
        model = ApplicantDetail
        fields = [
            'id',
            'category',
            'full_name',
            'district_name',
            'district_id',
            'tehsil_name',
            'business_name',
            'postal_address',
            'latitude',
            'longitude',
            'material_flow_kg_per_day',
        ]

    def get_category(self, obj):
        """Consumers are shown on the map as distributors."""
        if obj.registration_for == 'Consumer':
            return 'Distributor'
        return obj.registration_for

    def get_full_name(self, obj):
        return obj.full_name

    def get_material_flow_kg_per_day(self, obj):
        category = obj.registration_for
        try:
            if category == 'Producer':
                return obj.producer.total_capacity_value or 0
            if category == 'Consumer':
                return to_float(obj.consumer.consumption)
            if category == 'Collector':
                return obj.collector.total_capacity_value or 0
            if category == 'Recycler':
                return obj.recycler.get_total_waste_collected()
        except (Producer.DoesNotExist, Consumer.DoesNotExist, Collector.DoesNotExist, Recycler.DoesNotExist):
            return 0
        return 0

    def get_business_name(self, obj):
        """Placeholder business names of traders fall back to the applicant's name."""
        profile = getattr(obj, 'businessprofile', None)
        business_name = profile.name or profile.business_name if profile else None
        if business_name == 'Trader':
            return obj.full_name
        return business_name


class DistrictPlasticStatsSerializer(serializers.ModelSerializer):
    produced_kg_per_day = serializers.SerializerMethodField()
    distributed_kg_per_day = serializers.SerializerMethodField()
    collected_kg_per_day = serializers.SerializerMethodField()
    waste_disposed_kg_per_day = serializers.SerializerMethodField()
    waste_collected_kg_per_day = serializers.SerializerMethodField()
    unmanaged_waste_kg_per_day = serializers.SerializerMethodField()
    recycling_efficiency = serializers.SerializerMethodField()

    EXCLUDED_GROUPS = ["APPLICANT", "LSO", "LSM", "DO"]

    class Meta:
        model = District
        fields = [
            "district_id",
            "district_name",
            "produced_kg_per_day",
            "distributed_kg_per_day",
            "collected_kg_per_day",
            "waste_disposed_kg_per_day",
            "waste_collected_kg_per_day",
            "unmanaged_waste_kg_per_day",
            "recycling_efficiency",
        ]

    def in_process(self, model, district):
        """Category records of the district that are In Process beyond the first review desks."""
        return model.objects.filter(
            applicant__businessprofile__district=district,
            applicant__registration_for=model.__name__,
            applicant__application_status="In Process",
        ).exclude(applicant__assigned_group__in=self.EXCLUDED_GROUPS)

    def capacity_sum(self, model, district):
        return self.in_process(model, district).aggregate(
            total=Sum("total_capacity_value", default=0))["total"] or 0

    def get_produced_kg_per_day(self, obj):
        return self.capacity_sum(Producer, obj)

    def get_distributed_kg_per_day(self, obj):
        consumptions = Consumer.objects.filter(applicant__businessprofile__district=obj).values_list(
            'consumption', flat=True)
        return sum(to_float(value) for value in consumptions)

    def get_collected_kg_per_day(self, obj):
        return self.capacity_sum(Collector, obj)

    def _recyclers(self, obj):
        return Recycler.objects.filter(applicant__businessprofile__district=obj)

    def get_waste_collected_kg_per_day(self, obj):
        return sum(recycler.get_total_waste_collected() for recycler in self._recyclers(obj))

    def get_waste_disposed_kg_per_day(self, obj):
        return sum(recycler.get_total_waste_disposed() for recycler in self._recyclers(obj))

    def get_recycling_efficiency(self, obj):
        """Recycled waste over the larger of the two collected figures, as a percentage."""
        max_collected = max(self.get_collected_kg_per_day(obj), self.get_waste_collected_kg_per_day(obj))
        if max_collected == 0:
            return 0
        return max(0, round((self.get_waste_disposed_kg_per_day(obj) / max_collected) * 100, 2))

    def get_unmanaged_waste_kg_per_day(self, obj):
        max_collected = max(self.get_collected_kg_per_day(obj), self.get_waste_collected_kg_per_day(obj))
        return max(0, max_collected - self.get_waste_disposed_kg_per_day(obj))


class InspectionReportSerializer(serializers.ModelSerializer):
    district = serializers.CharField(source="district.district_name", read_only=True)

    class Meta:
        model = InspectionReport
        fields = '__all__'
        read_only_fields = ['created_by', 'created_at']


class DistrictSummarySerializer(serializers.Serializer):
    district = serializers.CharField()
    total_inspections = serializers.IntegerField()
    total_notices_issued = serializers.IntegerField()
    total_plastic_bags_confiscated = serializers.FloatField()
    total_confiscated_plastic = serializers.FloatField()
    total_firs_registered = serializers.IntegerField()
    total_premises_sealed = serializers.IntegerField()
    total_complaints_filed = serializers.IntegerField()
    total_fine_amount = serializers.FloatField()
    total_fine_recovered = serializers.FloatField()
    pending_fine_amount = serializers.FloatField()
    total_fines_pending = serializers.IntegerField()
    total_fines_partial = serializers.IntegerField()
    total_fines_recovered = serializers.IntegerField()
    total_de_sealed_premises = serializers.IntegerField()
    total_affidavits_uploaded = serializers.IntegerField()


class DistrictPlasticCommitteeDocumentSerializer(serializers.ModelSerializer):
    district_name = serializers.CharField(source="district.district_name", read_only=True)
    uploaded_at = serializers.SerializerMethodField()
    uploaded_by_name = serializers.SerializerMethodField()

    class Meta:
        model = DistrictPlasticCommitteeDocument
        fields = ["id", "district_id", "district_name", "document_type", "document", "document_date", "uploaded_at",
                  "uploaded_by_name", "title"]

    def get_uploaded_at(self, obj):
        return localtime(obj.uploaded_at).strftime("%Y-%m-%d %H:%M:%S")

    def get_uploaded_by_name(self, obj):
        if obj.uploaded_by:
            full_name = f"{obj.uploaded_by.first_name or ''} {obj.uploaded_by.last_name or ''}".strip()
            return full_name or obj.uploaded_by.username
        return "Unknown"

    def to_representation(self, instance):
        representation = super().to_representation(instance)
        if instance.document:
            representation["document"] = media_download_url(self.context.get("request"), instance.document)
        return representation


class CompetitionRegistrationSerializer(serializers.ModelSerializer):
    class Meta:
        model = CompetitionRegistration
        fields = '__all__'
        read_only_fields = ['registration_id', 'created_at']


class GroupSerializer(serializers.ModelSerializer):
    district_id = serializers.SerializerMethodField()
    district_name = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = ['id', 'name', 'district_id', 'district_name']

    def _district(self):
        user = self.context.get('user')
        profile = UserProfile.objects.filter(user=user).select_related('district').first() if user else None
        return profile.district if profile else None

    def get_district_id(self, obj):
        district = self._district()
        return district.district_id if district else None

    def get_district_name(self, obj):
        district = self._district()
        return district.district_name if district else None


class AlertSerializer(serializers.ModelSerializer):
    class Meta:
        model = Alert
        fields = '__all__'
        read_only_fields = ['status', 'sent_at', 'failure_reason', 'retry_count', 'read_at', 'created_at']


class AlertRecipientSerializer(serializers.ModelSerializer):
    class Meta:
        model = AlertRecipient
        fields = ['applicant', 'email', 'phone', 'email_enabled', 'sms_enabled', 'in_app_enabled',
                  'whatsapp_enabled', 'email_verified', 'phone_verified', 'updated_at']
        read_only_fields = ['applicant', 'email_verified', 'phone_verified', 'updated_at']
