from django import forms
from django.contrib import admin
from django.contrib.auth.models import User
from simple_history.admin import SimpleHistoryAdmin

from .models import (
    Division,
    District,
    Tehsil,
    ApiLog,
    AuditLog,
    AccessLog,
    ApplicantDetail,
    ApplicationSubmitted,
    BusinessProfile,
    Producer,
    Consumer,
    Collector,
    Recycler,
    ApplicationAssignment,
    ApplicantDocuments,
    UserProfile,
    PSIDTracking,
    ApplicantFieldResponse,
    ApplicantManualFields,
    ApplicantFee,
    ServiceConfiguration,
    ExternalServiceToken,
    License,
    InspectionReport,
    DistrictPlasticCommitteeDocument,
    CompetitionRegistration,
    Alert,
    AlertRecipient,
    EecClub,
)

admin.site.unregister(User)


class CustomUserChangeForm(forms.ModelForm):
    password_plain = forms.CharField(
        label="New Password",
        required=False,
        widget=forms.PasswordInput,
        help_text="Leave blank to keep the current password."
    )

    class Meta:
        model = User
        fields = ['username', 'first_name', 'last_name', 'email', 'is_active', 'is_staff', 'is_superuser', 'groups']

    def save(self, commit=True):
        user = super().save(commit=False)
        password = self.cleaned_data.get('password_plain')
        if password:
            user.set_password(password)
        if commit:
            user.save()
            self.save_m2m()
        return user


@admin.register(User)
class UserAdmin(SimpleHistoryAdmin):
    form = CustomUserChangeForm
    list_display = [field.name for field in User._meta.fields if field.name != 'password']
    search_fields = ['username', 'first_name', 'last_name', 'email']


@admin.register(Division)
class DivisionAdmin(admin.ModelAdmin):
    list_display = ['division_id', 'division_name', 'division_code']
    search_fields = ['division_name', 'division_code']
    ordering = ['division_name']


@admin.register(District)
class DistrictAdmin(admin.ModelAdmin):
    list_display = ['district_id', 'district_name', 'division', 'district_code', 'short_name', 'pitb_district_id']
    list_filter = ['division']
    search_fields = ['district_name', 'district_code', 'short_name']
    ordering = ['district_name']


@admin.register(Tehsil)
class TehsilAdmin(admin.ModelAdmin):
    list_display = ['tehsil_id', 'tehsil_name', 'tehsil_code', 'district', 'division']
    list_filter = ['district', 'division']
    search_fields = ['tehsil_name', 'tehsil_code']
    ordering = ['tehsil_name']


@admin.register(ApiLog)
class ApiLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'service_name', 'endpoint', 'status_code']
    list_filter = ['service_name', 'status_code']
    search_fields = ['service_name', 'endpoint', 'status_code']
    ordering = ['-created_at']


@admin.register(AccessLog)
class AccessLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'get_user_display', 'model_name', 'object_id', 'method', 'ip_address', 'endpoint')
    list_filter = ('model_name', 'method', 'timestamp')
    search_fields = ('user__username', 'model_name', 'object_id', 'endpoint', 'ip_address')
    ordering = ['-timestamp']

    @admin.display(description='User')
    def get_user_display(self, obj):
        if obj.user:
            return f"{obj.user.username} ({obj.user.email})"
        return "Anonymous"


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'user', 'action', 'model_name', 'object_id', 'ip_address')
    search_fields = ('user__username', 'model_name', 'action', 'ip_address')
    list_filter = ('action', 'timestamp')


class AllFieldsHistoryAdmin(SimpleHistoryAdmin):
    """History-aware admin listing every concrete field of its model."""

    def get_list_display(self, request):
        return [field.name for field in self.model._meta.fields]


for audited_model in (
        ApplicantDetail, ApplicationSubmitted, BusinessProfile, Producer, Consumer, Collector, Recycler,
        ApplicationAssignment, ApplicantDocuments, UserProfile, PSIDTracking, ApplicantFieldResponse,
        ApplicantManualFields, ApplicantFee, ServiceConfiguration, ExternalServiceToken, License,
        InspectionReport, DistrictPlasticCommitteeDocument):
    admin.site.register(audited_model, AllFieldsHistoryAdmin)


@admin.register(CompetitionRegistration)
class CompetitionRegistrationAdmin(admin.ModelAdmin):
    list_display = ['registration_id', 'full_name', 'institute', 'category', 'competition_type', 'mobile',
                    'created_at']
    list_filter = ['category', 'competition_type']
    search_fields = ['registration_id', 'full_name', 'mobile']


@admin.register(Alert)
class AlertAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'applicant', 'alert_type', 'priority', 'status', 'is_read', 'title']
    list_filter = ['alert_type', 'priority', 'status', 'is_read']
    search_fields = ['title', 'message', 'applicant__tracking_number']


@admin.register(AlertRecipient)
class AlertRecipientAdmin(admin.ModelAdmin):
    list_display = ['applicant', 'email', 'phone', 'email_enabled', 'sms_enabled', 'whatsapp_enabled']


@admin.register(EecClub)
class EecClubAdmin(admin.ModelAdmin):
    list_display = ['emiscode', 'school_name', 'head_name', 'district_name', 'education_level', 'gender']
    list_filter = ['district', 'education_level', 'gender']
    search_fields = ['school_name', 'emiscode', 'head_name']
