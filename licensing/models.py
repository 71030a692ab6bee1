import uuid

from django.contrib.auth.models import User
from django.core.validators import MaxValueValidator, MinLengthValidator, MinValueValidator, RegexValidator
from django.db import models
from django.utils import timezone
from simple_history.models import HistoricalRecords

from licensing.models_choices import *
from licensing.services.geo import geometry_contains
from licensing.utils import uuid_filename, validate_latitude, validate_longitude

cnic_validators = [
    MinLengthValidator(15),
    RegexValidator(
        regex=r'^\d{5}-\d{7}-\d{1}$',
        message="CNIC must be in the format XXXXX-XXXXXXX-X."
    ),
]
mobile_validators = [
    MinLengthValidator(10),
    RegexValidator(
        regex=r'^\d{10}$',
        message="Mobile number must be exactly 10 digits, e.g., '3001234567'."
    ),
]


class Division(models.Model):
    division_id = models.AutoField(primary_key=True)
    division_name = models.CharField(max_length=254)
    division_code = models.CharField(max_length=254)

    def __str__(self):
        return self.division_name

    class Meta:
        db_table = 'tbl_divisions'
        ordering = ['division_name']
        verbose_name_plural = "Divisions"


class District(models.Model):
    district_id = models.IntegerField(primary_key=True)
    division = models.ForeignKey(Division, models.DO_NOTHING, related_name='districts')
    district_name = models.CharField(max_length=254)
    district_code = models.CharField(max_length=254)
    short_name = models.CharField(max_length=3)
    pitb_district_id = models.IntegerField(null=True, blank=True)
    # GeoJSON Polygon or MultiPolygon in EPSG:4326
    geom = models.JSONField(null=True, blank=True)

    def __str__(self):
        return self.district_name

    @staticmethod
    def get_district_by_coordinates(lat, lon):
        for district in District.objects.filter(geom__isnull=False).order_by('district_name'):
            if geometry_contains(district.geom, lat, lon):
                return district
        return None

    class Meta:
        db_table = 'tbl_districts'
        ordering = ['district_name']
        verbose_name_plural = "Districts"
        indexes = [
            models.Index(fields=['district_code'], name='idx_district_code'),
            models.Index(fields=['short_name'], name='idx_district_short_name'),
        ]


class Tehsil(models.Model):
    tehsil_id = models.AutoField(primary_key=True)
    district = models.ForeignKey(District, models.DO_NOTHING, related_name='tehsils')
    division = models.ForeignKey(Division, models.DO_NOTHING, related_name='tehsils')
    tehsil_name = models.CharField(max_length=254)
    tehsil_code = models.CharField(unique=True, max_length=254)

    def __str__(self):
        return self.tehsil_name

    class Meta:
        db_table = 'tbl_tehsils'
        ordering = ['tehsil_name']
        verbose_name_plural = "Tehsils"
        indexes = [
            models.Index(fields=['district'], name='idx_tehsil_district'),
        ]


def default_value_uuid():
    return str(uuid.uuid4())


class ApplicantDetail(models.Model):
    registration_for = models.CharField(max_length=10, choices=REG_TYPE_CHOICES, null=True)
    first_name = models.CharField(max_length=255)
    last_name = models.CharField(max_length=255, blank=True, null=True)
    applicant_designation = models.CharField(max_length=255, blank=True, null=True)
    gender = models.CharField(max_length=100, choices=GENDER_CHOICES)
    cnic = models.CharField(max_length=15, help_text='XXXXX-XXXXXXX-X', validators=cnic_validators)
    email = models.EmailField(max_length=255, blank=True, null=True)
    mobile_operator = models.CharField(max_length=15, choices=MOBILE_NETWORK_CHOICES, blank=True, null=True)
    mobile_no = models.CharField(max_length=10, help_text='3001234567', validators=mobile_validators)
    application_status = models.CharField(max_length=20, choices=APPLICATION_STATUS_CHOICES, default='Created')
    tracking_number = models.CharField(max_length=100, null=True, blank=True)
    remarks = models.TextField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.CASCADE, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    assigned_group = models.CharField(max_length=100, null=True, blank=True, choices=USER_GROUPS)
    tracking_hash = models.CharField(max_length=36, default=default_value_uuid, editable=False)
    history = HistoricalRecords()

    def __str__(self):
        return f"{self.first_name} {self.last_name or ''}".strip()

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name or ''}".strip()

    def build_tracking_number(self):
        """
        ``<DISTRICT_SHORT>-<CATEGORY[:3]>-<id:03>`` once the business profile
        has a district, else None.
        """
        if self.pk is None or not self.registration_for:
            return None
        profile = BusinessProfile.objects.filter(applicant_id=self.pk).select_related('district').first()
        if not profile or not profile.district:
            return None

        district = profile.district
        district_code = district.short_name or district.district_name[:3].upper()
        return f"{district_code.upper()}-{self.registration_for[:3].upper()}-{str(self.pk).zfill(3)}"

    def save(self, *args, **kwargs):
        is_new_record = self.pk is None

        if self.application_status == 'Submitted':
            if is_new_record:
                current_group = self.assigned_group
            else:
                current_group = ApplicantDetail.objects.filter(pk=self.pk).values_list(
                    'assigned_group', flat=True).first()
            if not current_group or current_group == 'APPLICANT':
                self.assigned_group = 'LSO'

        if not self.tracking_number:
            self.tracking_number = self.build_tracking_number()

        super().save(*args, **kwargs)

        if self.application_status == 'Submitted':
            ApplicationSubmitted.objects.get_or_create(applicant=self)

    class Meta:
        indexes = [
            models.Index(fields=['application_status'], name='idx_app_status'),
            models.Index(fields=['assigned_group'], name='idx_assigned_group'),
            models.Index(fields=['created_by'], name='idx_created_by'),
            models.Index(fields=['tracking_number'], name='idx_tracking_number'),
            models.Index(fields=['application_status', 'assigned_group'], name='idx_status_group'),
        ]


class ApplicationSubmitted(models.Model):
    applicant = models.OneToOneField(ApplicantDetail, on_delete=models.CASCADE, blank=True, null=True,
                                     related_name='submittedapplication')
    created_at = models.DateTimeField(auto_now_add=True)
    history = HistoricalRecords()


class BusinessProfile(models.Model):
    entity_type = models.CharField(max_length=20, choices=ENTITY_TYPE_CHOICES, default='Individual')
    applicant = models.OneToOneField(ApplicantDetail, on_delete=models.CASCADE, blank=True, null=True,
                                     related_name='businessprofile')
    tracking_number = models.CharField(max_length=100, unique=True, blank=True, null=True)
    # Individual
    name = models.CharField(max_length=255, blank=True, null=True)
    ntn_strn_pra_no_individual = models.CharField(max_length=20, blank=True, null=True)
    # Company/Corporation/Partnership
    business_name = models.CharField(max_length=255, blank=True, null=True)
    business_registration_type = models.CharField(max_length=50, choices=BUSINESS_REGISTRATION_CHOICES,
                                                  blank=True, null=True)
    business_registration_no = models.CharField(max_length=50, blank=True, null=True)
    ntn_strn_pra_no_company = models.CharField(max_length=20, blank=True, null=True)
    working_days = models.IntegerField(choices=((5, 5), (6, 6), (7, 7)), default=5,
                                       help_text='working days in the week', blank=True, null=True)
    commencement_date = models.DateField(help_text='Date since commencement of Business', blank=True, null=True)
    no_of_workers = models.IntegerField(help_text='Number of workers (including contract labour)',
                                        blank=True, null=True)
    # Address
    district = models.ForeignKey(District, on_delete=models.SET_NULL, db_column='district_id',
                                 verbose_name="District", blank=True, null=True)
    tehsil = models.ForeignKey(Tehsil, on_delete=models.SET_NULL, db_column='tehsil_id',
                               verbose_name="Tehsil", blank=True, null=True)
    city_town_village = models.CharField(max_length=256, help_text="Name of City/Town or Village",
                                         blank=True, null=True)
    postal_address = models.TextField(blank=True, null=True)
    postal_code = models.CharField(max_length=10, blank=True, null=True)
    location_latitude = models.DecimalField(
        max_digits=9, decimal_places=6, validators=[validate_latitude], blank=True, null=True,
        help_text='Format: XX.XXXXXX, Range: 20.000000 to 40.000000, Unit: Decimal Degree')
    location_longitude = models.DecimalField(
        max_digits=9, decimal_places=6, validators=[validate_longitude], blank=True, null=True,
        help_text='Format: XX.XXXXXX, Range: 60.000000 to 80.000000, Unit: Decimal Degree')
    # Contact
    email = models.EmailField(max_length=255, blank=True, null=True)
    mobile_operator = models.CharField(max_length=15, choices=MOBILE_NETWORK_CHOICES, blank=True, null=True)
    mobile_no = models.CharField(max_length=10, help_text='3001234567', validators=mobile_validators,
                                 blank=True, null=True)
    phone_no = models.CharField(max_length=12, help_text='042-12345678', blank=True, null=True)
    website_address = models.URLField(blank=True, null=True)
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True,
                                   related_name='businessprofilecreatedby')
    history = HistoricalRecords()

    def __str__(self):
        return self.business_name or self.name or f"Business profile {self.pk}"

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)

        applicant = self.applicant
        if applicant is not None and not applicant.tracking_number:
            tracking_number = applicant.build_tracking_number()
            if tracking_number:
                applicant.tracking_number = tracking_number
                applicant.save(update_fields=['tracking_number', 'updated_at'])
                BusinessProfile.objects.filter(pk=self.pk).update(tracking_number=tracking_number)
                self.tracking_number = tracking_number

    class Meta:
        indexes = [
            models.Index(fields=['district'], name='idx_district'),
            models.Index(fields=['tehsil'], name='idx_tehsil'),
            models.Index(fields=['tracking_number'], name='idx_bp_tracking_number'),
        ]


class PlasticItems(models.Model):
    item_name = models.CharField(max_length=255, unique=True)

    def __str__(self):
        return self.item_name


class Products(models.Model):
    product_name = models.CharField(max_length=255, unique=True)

    def __str__(self):
        return self.product_name


class ByProducts(models.Model):
    product_name = models.CharField(max_length=255, unique=True)

    def __str__(self):
        return self.product_name


class Producer(models.Model):
    applicant = models.OneToOneField(ApplicantDetail, on_delete=models.CASCADE, related_name='producer')
    tracking_number = models.CharField(max_length=100, blank=True, null=True)

    registration_required_for = models.JSONField(default=list, blank=True, null=True)
    registration_required_for_other = models.JSONField(default=list, blank=True, null=True)
    plain_plastic_sheets_for_food_wrapping = models.JSONField(default=list, blank=True, null=True)
    packaging_items = models.JSONField(default=list, blank=True, null=True)
    registration_required_for_other_other_text = models.CharField(max_length=1024, blank=True, null=True)

    number_of_machines = models.CharField(max_length=255, blank=True, null=True)
    total_capacity_value = models.FloatField(blank=True, null=True)
    date_of_setting_up = models.DateField(blank=True, null=True)

    total_waste_generated_value = models.FloatField(blank=True, null=True)
    has_waste_storage_capacity = models.CharField(max_length=255, blank=True, null=True,
                                                  choices=AVAILABILITY_CHOICES)
    waste_disposal_provision = models.CharField(max_length=255, blank=True, null=True,
                                                choices=AVAILABILITY_CHOICES)

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    history = HistoricalRecords()

    def __str__(self):
        return f"Producer for {self.applicant}"


class RawMaterial(models.Model):
    producer = models.ForeignKey(Producer, on_delete=models.CASCADE, related_name='raw_materials')
    material_name = models.CharField(max_length=255)
    material_description = models.CharField(max_length=255, blank=True, null=True)
    material_quantity_value = models.FloatField(blank=True, null=True)
    material_quantity_unit = models.CharField(max_length=50, blank=True, null=True)
    material_utilized_quantity_value = models.FloatField(blank=True, null=True)
    material_utilized_quantity_unit = models.CharField(max_length=50, blank=True, null=True)
    material_import_bought = models.CharField(max_length=255, blank=True, null=True, choices=IMPORT_BOUGHT)
    name_seller_importer = models.CharField(max_length=255, blank=True, null=True)
    is_importer_form_filled = models.BooleanField(default=False)

    def __str__(self):
        return self.material_name


class Consumer(models.Model):
    applicant = models.OneToOneField(ApplicantDetail, on_delete=models.CASCADE, related_name='consumer')
    registration_required_for = models.JSONField(default=list, blank=True)
    registration_required_for_other = models.JSONField(default=list, blank=True)
    plain_plastic_sheets_for_food_wrapping = models.JSONField(default=list, blank=True, null=True)
    packaging_items = models.JSONField(default=list, blank=True, null=True)
    registration_required_for_other_other_text = models.CharField(max_length=1024, blank=True, null=True)
    consumption = models.CharField(max_length=100, blank=True, null=True, help_text="Kg per day")
    provision_waste_disposal_bins = models.CharField(max_length=3, choices=YES_NO_CHOICES, default='No')
    no_of_waste_disposable_bins = models.PositiveIntegerField(blank=True, null=True)
    segregated_plastics_handed_over_to_registered_recyclers = models.CharField(
        max_length=3, choices=YES_NO_CHOICES, default='No')
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True,
                                   related_name='consumercreatedby')
    history = HistoricalRecords()

    def __str__(self):
        return f"Consumer for {self.applicant}"


class Collector(models.Model):
    applicant = models.OneToOneField(ApplicantDetail, on_delete=models.CASCADE, related_name='collector')
    registration_required_for = models.JSONField(
        default=list, blank=True, null=True,
        help_text="Categories of Single Use Plastics (e.g., ['Carry bags', 'Packaging except food'])")
    registration_required_for_other = models.JSONField(
        default=list, blank=True, null=True,
        help_text="Categories for Other Plastics (e.g., ['Plastic Utensils', 'PET Bottles'])")
    # [{'category': 'Recycler', 'address': '123 Street Name'}, ...]
    selected_categories = models.JSONField(default=list, blank=True, null=True,
                                           help_text="Source of disposal with details for each category")
    total_capacity_value = models.FloatField(blank=True, null=True, help_text="Collection in Kg per day")
    number_of_vehicles = models.PositiveIntegerField(blank=True, null=True)
    number_of_persons = models.PositiveIntegerField(blank=True, null=True)
    registration_required_for_other_other_text = models.CharField(max_length=1024, blank=True, null=True)
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True,
                                   related_name='collectorcreatedby')
    history = HistoricalRecords()

    def __str__(self):
        return f"Collector {self.pk}: {self.total_capacity_value} Kg/day"


class Recycler(models.Model):
    applicant = models.OneToOneField(ApplicantDetail, on_delete=models.CASCADE, related_name='recycler')
    # [{'category': ..., 'wasteCollection': ..., 'wasteDisposal': ...}, ...]
    selected_categories = models.JSONField(default=list, blank=True)
    plastic_waste_acquired_through = models.JSONField(default=list, blank=True)
    has_adequate_pollution_control_systems = models.CharField(max_length=10, choices=YES_NO_CHOICES,
                                                              default='No')
    pollution_control_details = models.TextField(blank=True, null=True)
    registration_required_for_other_other_text = models.CharField(max_length=1024, blank=True, null=True)
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True,
                                   related_name='recyclercreatedby')
    history = HistoricalRecords()

    def __str__(self):
        return f"Recycler for {self.applicant}"

    def get_total_waste_collected(self):
        return sum(float(item.get("wasteCollection", 0) or 0)
                   for item in self.selected_categories or [] if isinstance(item, dict))

    def get_total_waste_disposed(self):
        return sum(float(item.get("wasteDisposal", 0) or 0)
                   for item in self.selected_categories or [] if isinstance(item, dict))


class ApplicationAssignment(models.Model):
    applicant = models.ForeignKey(ApplicantDetail, on_delete=models.CASCADE, related_name='applicationassignment')
    assigned_group = models.CharField(max_length=100, null=True, choices=USER_GROUPS)
    remarks = models.TextField(null=True, blank=True)
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True,
                                   related_name='applicationassignmentupdatedby')
    updated_at = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True,
                                   related_name='applicationassignmentcreatedby')
    history = HistoricalRecords()

    def __str__(self):
        return f"{self.applicant} -> {self.assigned_group}"

    class Meta:
        indexes = [
            models.Index(fields=['applicant'], name='idx_applicant_assignment'),
            models.Index(fields=['assigned_group'], name='idx_assigned_group_assignment'),
            models.Index(fields=['assigned_group', 'created_by'], name='idx_group_created_assignment'),
        ]


def upload_applicant_document(instance, filename):
    return uuid_filename('documents', filename)


class ApplicantDocuments(models.Model):
    applicant = models.ForeignKey(ApplicantDetail, on_delete=models.CASCADE, related_name='applicationdocument')
    document = models.FileField(upload_to=upload_applicant_document)
    document_description = models.CharField(max_length=255)
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True,
                                   related_name='applicationdocumentupdatedby')
    updated_at = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True,
                                   related_name='applicationdocumentcreatedby')
    history = HistoricalRecords()

    def __str__(self):
        return f"{self.document_description} ({self.applicant})"

    class Meta:
        indexes = [
            models.Index(fields=['applicant'], name='idx_document_applicant'),
            models.Index(fields=['created_by'], name='idx_document_created_by'),
        ]


class UserProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE)
    district = models.ForeignKey(District, on_delete=models.SET_NULL, db_column='district_id',
                                 verbose_name="District", blank=True, null=True, related_name='userprofile')
    history = HistoricalRecords()

    def __str__(self):
        return f"{self.user.username} - {self.district.short_name if self.district else 'No District'}"


class ApplicantFieldResponse(models.Model):
    applicant = models.ForeignKey(ApplicantDetail, on_delete=models.CASCADE, related_name='field_responses')
    field_key = models.CharField(max_length=255)
    response = models.CharField(max_length=3, choices=YES_NO_CHOICES, default='Yes')
    # Only filled when the response is 'No'
    comment = models.TextField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    history = HistoricalRecords()

    def __str__(self):
        return f"{self.field_key} - {self.response}"


class ApplicantManualFields(models.Model):
    applicant = models.OneToOneField(ApplicantDetail, on_delete=models.CASCADE, related_name='manual_fields')
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # Producer
    list_of_products = models.TextField(null=True, blank=True)
    list_of_by_products = models.TextField(null=True, blank=True)
    raw_material_imported = models.TextField(null=True, blank=True)
    seller_name_if_raw_material_bought = models.CharField(max_length=255, null=True, blank=True)
    self_import_details = models.TextField(null=True, blank=True)
    raw_material_utilized = models.TextField(null=True, blank=True)
    compliance_thickness_75 = models.CharField(max_length=3, choices=YES_NO_CHOICES, null=True, blank=True)
    valid_consent_permit_building_bylaws = models.CharField(max_length=3, choices=YES_NO_CHOICES,
                                                            null=True, blank=True)
    stockist_distributor_list = models.TextField(null=True, blank=True)

    # Consumer
    procurement_per_day = models.CharField(max_length=100, null=True, blank=True,
                                           help_text="Procurement in Kg per day")

    # Recycler
    no_of_workers = models.PositiveIntegerField(null=True, blank=True)
    labor_dept_registration_status = models.CharField(max_length=3, choices=YES_NO_CHOICES,
                                                      null=True, blank=True)
    occupational_safety_and_health_facilities = models.TextField(null=True, blank=True)
    adverse_environmental_impacts = models.TextField(null=True, blank=True)

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='applicantmanualfields_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='applicantmanualfields_updated')
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    def __str__(self):
        return f"Manual Fields for {self.applicant} (ID: {self.pk})"


class ApplicantFee(models.Model):
    applicant = models.ForeignKey(ApplicantDetail, on_delete=models.CASCADE, related_name="applicantfees")
    fee_amount = models.DecimalField(max_digits=10, decimal_places=2)
    is_settled = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    reason = models.TextField(blank=True, null=True)
    history = HistoricalRecords()

    def __str__(self):
        return f"Fee for {self.applicant} - Rs. {self.fee_amount}"

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['applicant'], name='idx_fee_applicant'),
            models.Index(fields=['is_settled'], name='idx_fee_is_settled'),
        ]


class PSIDTracking(models.Model):
    applicant = models.ForeignKey(ApplicantDetail, on_delete=models.CASCADE, related_name='psid_tracking',
                                  null=True, blank=True)
    # Request
    dept_transaction_id = models.CharField(max_length=50)
    due_date = models.DateField()
    expiry_date = models.DateTimeField()
    amount_within_due_date = models.DecimalField(max_digits=10, decimal_places=2)
    amount_after_due_date = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    consumer_name = models.CharField(max_length=255)
    mobile_no = models.CharField(max_length=15)
    cnic = models.CharField(max_length=13)
    email = models.EmailField(null=True, blank=True)
    district_id = models.IntegerField(null=True, blank=True)
    amount_bifurcation = models.JSONField(default=list)

    # Gateway response
    consumer_number = models.CharField(max_length=50, unique=True, null=True, blank=True, verbose_name="PSID")
    status = models.CharField(max_length=50, default="Pending")
    message = models.TextField(null=True, blank=True)

    # Payment
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default="UNPAID")
    amount_paid = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    paid_date = models.DateField(null=True, blank=True)
    paid_time = models.TimeField(null=True, blank=True)
    bank_code = models.CharField(max_length=10, null=True, blank=True)

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    history = HistoricalRecords()

    def __str__(self):
        return f"PSID {self.consumer_number or 'Pending'} - {self.dept_transaction_id}"

    class Meta:
        indexes = [
            models.Index(fields=['applicant', 'payment_status'], name='idx_psid_applicant_status'),
        ]


class ServiceConfiguration(models.Model):
    service_name = models.CharField(max_length=100, unique=True)
    base_url = models.URLField(help_text="Base endpoint of the service")
    auth_endpoint = models.URLField(help_text="Authentication endpoint")
    generate_psid_endpoint = models.URLField(help_text="PSID generation endpoint")
    transaction_status_endpoint = models.URLField(help_text="Transaction status endpoint", null=True, blank=True)
    client_id = models.CharField(max_length=200)
    client_secret = models.CharField(max_length=500)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    def __str__(self):
        return self.service_name


class ExternalServiceToken(models.Model):
    service_name = models.CharField(max_length=100)
    access_token = models.TextField()
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    def is_expired(self):
        return timezone.now() >= self.expires_at

    def __str__(self):
        return f"{self.service_name} token (expires {self.expires_at:%Y-%m-%d %H:%M})"


class ApiLog(models.Model):
    """
    Request and response bodies of calls to and from the payment gateway.
    """
    service_name = models.CharField(max_length=100)
    endpoint = models.CharField(max_length=500)
    request_data = models.JSONField(null=True, blank=True)
    response_data = models.JSONField(null=True, blank=True)
    status_code = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.service_name} - {self.endpoint} - {self.created_at:%Y-%m-%d %H:%M:%S}"


class License(models.Model):
    license_for = models.CharField(max_length=50, default="Producer", verbose_name="License For",
                                   help_text="Producer, Consumer, Collector or Recycler")
    license_number = models.CharField(max_length=100, verbose_name="License Number")
    license_duration = models.CharField(max_length=50, verbose_name="License Duration", help_text="e.g., '3 Years'")
    owner_name = models.CharField(max_length=200, verbose_name="Owner's Name")
    business_name = models.CharField(max_length=200, verbose_name="Business Name")
    types_of_plastics = models.CharField(max_length=200, verbose_name="Types of Plastics")
    particulars = models.CharField(max_length=200, verbose_name="Particulars")
    fee_amount = models.DecimalField(max_digits=10, decimal_places=2)
    address = models.CharField(max_length=300, verbose_name="Address")
    date_of_issue = models.DateField(verbose_name="Date of Issue")
    applicant_id = models.IntegerField(verbose_name="Applicant ID", unique=True)
    is_active = models.BooleanField(default=True, verbose_name="Is Active")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    history = HistoricalRecords()

    TYPES_MAX_CHARACTERS = 71

    class Meta:
        ordering = ["-created_at"]

    def formatted_date_of_issue(self):
        return self.date_of_issue.strftime("%d.%m.%Y")

    def types_of_plastics_truncated(self):
        """
        Cut the plastic types to fit the certificate line: at most 71
        characters, ending at the last comma inside that window when there is one.
        """
        text = self.types_of_plastics
        if not text:
            return ""
        if len(text) <= self.TYPES_MAX_CHARACTERS:
            return text

        substring = text[:self.TYPES_MAX_CHARACTERS]
        last_comma_index = substring.rfind(',')
        if last_comma_index != -1:
            return substring[:last_comma_index]
        return substring

    def license_for_formatted(self):
        if self.license_for == "Consumer":
            return "Stockist/Distributor/Supplier"
        return self.license_for or "Not Specified"

    def __str__(self):
        return f"{self.license_number} ({self.license_for})"


def upload_affidavit(instance, filename):
    return uuid_filename('affidavits', filename)


def upload_inspection_file(instance, filename):
    return uuid_filename('inspections', filename)


class InspectionReport(models.Model):
    business_name = models.CharField(max_length=255)
    business_type = models.CharField(max_length=50)
    license_number = models.CharField(max_length=50, blank=True, null=True)

    violation_found = models.JSONField(blank=True, null=True)
    violation_type = models.JSONField(blank=True, null=True)
    action_taken = models.JSONField(blank=True, null=True)

    plastic_bags_confiscation = models.FloatField(blank=True, null=True)
    confiscation_other_plastics = models.JSONField(blank=True, null=True)
    total_confiscation = models.FloatField(blank=True, null=True)
    other_single_use_items = models.JSONField(blank=True, null=True)

    latitude = models.FloatField(blank=True, null=True,
                                 validators=[MinValueValidator(-90), MaxValueValidator(90)])
    longitude = models.FloatField(blank=True, null=True,
                                  validators=[MinValueValidator(-180), MaxValueValidator(180)])
    created_at = models.DateTimeField(auto_now_add=True)

    inspection_date = models.DateField(blank=True, null=True)
    fine_amount = models.FloatField(blank=True, null=True)
    fine_recovery_status = models.CharField(max_length=20, choices=FINE_RECOVERY_STATUS_CHOICES,
                                            blank=True, null=True)
    fine_recovery_date = models.DateField(blank=True, null=True)
    recovery_amount = models.FloatField(blank=True, null=True)
    de_sealed_date = models.DateField(blank=True, null=True)
    fine_recovery_breakup = models.JSONField(blank=True, null=True)

    affidavit = models.FileField(upload_to=upload_affidavit, blank=True, null=True)
    district = models.ForeignKey(District, on_delete=models.SET_NULL, db_column='district_id',
                                 verbose_name="District", blank=True, null=True, related_name='inspectionreport')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name="inspections")

    confiscation_receipt = models.FileField(upload_to=upload_inspection_file, null=True, blank=True)
    payment_challan = models.FileField(upload_to=upload_inspection_file, null=True, blank=True)
    receipt_book_number = models.CharField(max_length=100, null=True, blank=True)
    receipt_number = models.CharField(max_length=100, null=True, blank=True)
    history = HistoricalRecords()

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)

        if isinstance(self.other_single_use_items, list) and self.other_single_use_items:
            snapshot, _ = SingleUsePlasticsSnapshot.objects.get_or_create(id=1)
            snapshot.update_snapshot(self.other_single_use_items)

    def __str__(self):
        return f"{self.business_name} - {self.business_type}"


class SingleUsePlasticsSnapshot(models.Model):
    """Singleton (id=1) holding every distinct single-use item seen in inspections."""
    plastic_items = models.JSONField(default=list)

    def update_snapshot(self, new_items):
        current_items = list(self.plastic_items or [])
        for item in new_items:
            if item not in current_items:
                current_items.append(item)
        if current_items != self.plastic_items:
            self.plastic_items = current_items
            self.save()

    def __str__(self):
        return f"Snapshot of {len(self.plastic_items)} Single Use Plastic Items"


def upload_committee_document(instance, filename):
    return uuid_filename('plastic_committee', filename)


class DistrictPlasticCommitteeDocument(models.Model):
    district = models.ForeignKey(District, on_delete=models.CASCADE, related_name="committee_documents")
    document_type = models.CharField(max_length=50, choices=COMMITTEE_DOCUMENT_CHOICES)
    title = models.CharField(max_length=1024, blank=True, null=True)
    document = models.FileField(upload_to=upload_committee_document)
    uploaded_at = models.DateTimeField(auto_now_add=True)
    uploaded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True)
    document_date = models.DateField(null=True, blank=True)
    history = HistoricalRecords()

    def __str__(self):
        return f"{self.district.district_name} - {self.document_type} ({self.uploaded_at.date()})"


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ("create", "Create"),
        ("update", "Update"),
        ("delete", "Delete"),
        ("login", "Login"),
        ("logout", "Logout"),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True)
    action = models.CharField(max_length=10, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=255, null=True, blank=True)
    object_id = models.CharField(max_length=255, null=True, blank=True)
    description = models.TextField()
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.timestamp} - {self.user} - {self.action}"


class AccessLog(models.Model):
    user = models.ForeignKey(User, null=True, on_delete=models.SET_NULL)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    method = models.CharField(max_length=10)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)
    endpoint = models.CharField(max_length=255)

    def __str__(self):
        return f"{self.method} {self.endpoint} by {self.user}"


def upload_student_card(instance, filename):
    return uuid_filename('competition/student_cards', filename)


def default_registration_id():
    return uuid.uuid4().hex[:8].upper()


class CompetitionRegistration(models.Model):
    COMPETITION_CHOICES = [
        ('poster', 'Poster'),
        ('painting', 'Painting'),
        ('3d_model', '3D Model'),
    ]
    CATEGORY_CHOICES = [
        ('School', 'School/College'),
        ('University', 'University'),
    ]
    full_name = models.CharField(max_length=255)
    institute = models.CharField(max_length=255)
    grade = models.CharField(max_length=50)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    competition_type = models.CharField(max_length=20, choices=COMPETITION_CHOICES)
    mobile = models.CharField(max_length=10)
    student_card_front = models.ImageField(upload_to=upload_student_card)
    student_card_back = models.ImageField(upload_to=upload_student_card, null=True, blank=True)
    photo_object = models.ImageField(upload_to=upload_student_card, null=True, blank=True)
    registration_id = models.CharField(max_length=50, unique=True, editable=False)
    created_at = models.DateTimeField(default=timezone.now)

    def save(self, *args, **kwargs):
        if not self.registration_id:
            self.registration_id = default_registration_id()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.full_name} ({self.registration_id})"


class Alert(models.Model):
    applicant = models.ForeignKey(ApplicantDetail, on_delete=models.CASCADE, related_name='alerts')
    alert_type = models.CharField(max_length=30, choices=ALERT_TYPE_CHOICES, default='SYSTEM')
    priority = models.CharField(max_length=10, choices=ALERT_PRIORITY_CHOICES, default='MEDIUM')
    title = models.CharField(max_length=255)
    message = models.TextField()
    description = models.TextField(blank=True, null=True)
    channels = models.JSONField(default=list)
    status = models.CharField(max_length=10, choices=ALERT_STATUS_CHOICES, default='PENDING')
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.TextField(null=True, blank=True)
    retry_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['applicant', 'is_read'], name='idx_alert_applicant_read'),
        ]

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])

    def __str__(self):
        return f"{self.alert_type}: {self.title}"


class AlertRecipient(models.Model):
    applicant = models.OneToOneField(ApplicantDetail, on_delete=models.CASCADE, related_name='alert_recipient')
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=15, blank=True, null=True)
    email_enabled = models.BooleanField(default=True)
    sms_enabled = models.BooleanField(default=True)
    in_app_enabled = models.BooleanField(default=True)
    whatsapp_enabled = models.BooleanField(default=False)
    email_verified = models.BooleanField(default=False)
    phone_verified = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    def allowed_channels(self, channels):
        enabled = {
            'EMAIL': self.email_enabled,
            'SMS': self.sms_enabled,
            'IN_APP': True,
            'WHATSAPP': self.whatsapp_enabled,
        }
        return [channel for channel in channels if enabled.get(channel)]

    def __str__(self):
        return f"Alert preferences for {self.applicant}"


def upload_club_notification(instance, filename):
    return uuid_filename('eec_notification', filename)


class EecClub(models.Model):
    emiscode = models.IntegerField(blank=True, null=True)
    school_name = models.CharField(max_length=255, blank=True, null=True)
    address = models.CharField(max_length=255, blank=True, null=True)
    head_name = models.CharField(max_length=255, blank=True, null=True)
    head_mobile_no = models.CharField(max_length=255, blank=True, null=True)
    gender = models.CharField(max_length=255, blank=True, null=True, choices=CLUB_GENDER_CHOICES)
    education_level = models.CharField(max_length=255, blank=True, null=True, choices=CLUB_LEVEL_CHOICES)
    latitude = models.FloatField(blank=True, null=True)
    longitude = models.FloatField(blank=True, null=True)
    added_by = models.CharField(max_length=255, blank=True, null=True)
    district = models.ForeignKey(District, models.SET_NULL, verbose_name="District", blank=True, null=True,
                                 related_name='eec_clubs')
    district_name = models.CharField(max_length=255, blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True, blank=True, null=True)
    notification_path = models.FileField(upload_to=upload_club_notification, verbose_name="Notification",
                                         blank=True, null=True)

    class Meta:
        db_table = 'eec_clubs'

    def save(self, *args, **kwargs):
        if self.district_id and not self.district_name:
            self.district_name = self.district.district_name
        super().save(*args, **kwargs)

    def __str__(self):
        return self.school_name or f"Club {self.pk}"
