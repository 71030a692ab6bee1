"""
Permission catalogue and default group permissions of the admin console.

The catalogue is a fixed list of ``licensing`` model permissions exposed to
staff screens. Resetting rebuilds group permissions from the defaults below
and drops direct user permissions that left the catalogue.
"""
import logging

from django.contrib.auth.models import Group, Permission, User
from django.contrib.contenttypes.models import ContentType
from django.db import transaction

from licensing import models as licensing_models

logger = logging.getLogger(__name__)

SUPER_GROUP = 'Super'
ADMIN_GROUP = 'Admin'
CONSOLE_GROUPS = {SUPER_GROUP, ADMIN_GROUP}

CATALOGUE = {
    'add': ['ApplicantDetail', 'ApplicantDocuments', 'ApplicantFieldResponse', 'ApplicantManualFields',
            'ApplicationAssignment', 'BusinessProfile', 'ByProducts', 'Collector', 'Consumer',
            'DistrictPlasticCommitteeDocument', 'InspectionReport', 'PlasticItems', 'Producer', 'Products',
            'PSIDTracking', 'RawMaterial', 'Recycler'],
    'change': ['ApplicantDetail', 'ApplicantManualFields', 'ApplicationAssignment', 'BusinessProfile',
               'Collector', 'Consumer', 'InspectionReport', 'Producer', 'Recycler'],
    'delete': ['ApplicantDetail', 'BusinessProfile', 'InspectionReport'],
    'view': ['ApplicantDetail', 'ApplicantDocuments', 'ApplicantFee', 'ApplicantFieldResponse',
             'ApplicantManualFields', 'ApplicationAssignment', 'BusinessProfile', 'ByProducts', 'Collector',
             'Consumer', 'District', 'DistrictPlasticCommitteeDocument', 'InspectionReport', 'License',
             'PlasticItems', 'Producer', 'Products', 'PSIDTracking', 'RawMaterial', 'Recycler',
             'SingleUsePlasticsSnapshot', 'Tehsil'],
}

LOOKUPS = ['view_district', 'view_tehsil', 'view_products', 'view_byproducts', 'view_plasticitems',
           'view_rawmaterial']

APPLICANT_PERMISSIONS = [
    'view_applicantdetail', 'add_applicantdetail', 'change_applicantdetail',
    'view_applicantdocuments', 'add_applicantdocuments',
    'view_businessprofile', 'add_businessprofile', 'change_businessprofile',
    'view_producer', 'add_producer', 'change_producer',
    'view_consumer', 'add_consumer', 'change_consumer',
    'view_collector', 'add_collector', 'change_collector',
    'view_recycler', 'add_recycler', 'change_recycler',
    'view_license', 'add_psidtracking', 'view_psidtracking',
] + LOOKUPS

REVIEWER_PERMISSIONS = [
    'view_applicantdetail', 'change_applicantdetail', 'view_applicantdocuments', 'view_businessprofile',
    'view_applicantfee', 'view_psidtracking', 'view_license', 'view_applicationassignment',
    'add_applicationassignment', 'change_applicationassignment', 'view_applicantfieldresponse',
    'view_applicantmanualfields',
] + LOOKUPS

DISTRICT_OFFICER_PERMISSIONS = REVIEWER_PERMISSIONS + ['view_inspectionreport']

DEFAULT_GROUP_PERMISSIONS = {
    'APPLICANT': APPLICANT_PERMISSIONS,
    'LSO': REVIEWER_PERMISSIONS,
    'LSM': REVIEWER_PERMISSIONS,
    'LSM2': REVIEWER_PERMISSIONS,
    'TL': REVIEWER_PERMISSIONS,
    'DO': DISTRICT_OFFICER_PERMISSIONS,
    'DEO': DISTRICT_OFFICER_PERMISSIONS,
    'DG': DISTRICT_OFFICER_PERMISSIONS,
    'Download License': [
        'view_license', 'view_applicantdetail', 'view_businessprofile', 'view_applicantdocuments',
        'view_psidtracking', 'view_applicantfee', 'view_district', 'view_tehsil',
    ],
    'Inspector': [
        'view_inspectionreport', 'add_inspectionreport', 'change_inspectionreport', 'view_district',
        'view_tehsil',
    ],
}


def permission_key(permission):
    return f"{permission.content_type.app_label}.{permission.codename}"


def ensure_catalogue():
    """Create any missing catalogue permission and return them all, keyed by codename."""
    catalogue = {}
    for action, model_names in CATALOGUE.items():
        for model_name in model_names:
            model = getattr(licensing_models, model_name)
            content_type = ContentType.objects.get_for_model(model)
            codename = f"{action}_{model._meta.model_name}"
            permission, created = Permission.objects.get_or_create(
                content_type=content_type,
                codename=codename,
                defaults={'name': f"Can {action} {model._meta.verbose_name}"},
            )
            if created:
                logger.info("Permission %s created", codename)
            catalogue[codename] = permission
    return catalogue


def catalogue_queryset():
    codenames = [f"{action}_{getattr(licensing_models, name)._meta.model_name}"
                 for action, names in CATALOGUE.items() for name in names]
    return Permission.objects.filter(content_type__app_label='licensing', codename__in=codenames) \
        .select_related('content_type').order_by('codename')


def resolve_permissions(keys):
    """
    Permissions for ``app_label.codename`` keys (bare codenames are taken as
    licensing ones). Unknown keys are ignored.
    """
    permissions = []
    for key in keys or []:
        app_label, _, codename = str(key).rpartition('.')
        permission = Permission.objects.filter(
            content_type__app_label=app_label or 'licensing', codename=codename).first()
        if permission is not None:
            permissions.append(permission)
    return permissions


@transaction.atomic
def reset_permissions():
    """Rebuild group permissions from the defaults. Returns the catalogue size."""
    catalogue = ensure_catalogue()
    valid = set(catalogue.values())

    for group_name in CONSOLE_GROUPS:
        Group.objects.get_or_create(name=group_name)
    for group_name in DEFAULT_GROUP_PERMISSIONS:
        Group.objects.get_or_create(name=group_name)

    for group in Group.objects.prefetch_related('permissions'):
        if group.name in CONSOLE_GROUPS:
            group.permissions.set(valid)
        elif group.name in DEFAULT_GROUP_PERMISSIONS:
            group.permissions.set([catalogue[codename] for codename in DEFAULT_GROUP_PERMISSIONS[group.name]])
        else:
            group.permissions.set([permission for permission in group.permissions.all() if permission in valid])

    for user in User.objects.prefetch_related('user_permissions'):
        direct = list(user.user_permissions.all())
        kept = [permission for permission in direct if permission in valid]
        if len(kept) != len(direct):
            user.user_permissions.set(kept)

    return len(catalogue)


ROLE_DASHBOARD_KEY = 'role_dashboard_map'


def normalize_role_dashboard_map(raw):
    """Keep only ``role -> /path`` string pairs, trimmed."""
    if not isinstance(raw, dict):
        return {}
    cleaned = {}
    for role, path in raw.items():
        if not isinstance(role, str) or not isinstance(path, str):
            continue
        role, path = role.strip(), path.strip()
        if role and path.startswith('/'):
            cleaned[role] = path
    return cleaned
