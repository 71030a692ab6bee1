"""
Admin console: permission catalogue, groups, users, superadmins, the role
dashboard map and the log browsers.
"""
from datetime import timedelta

from django.contrib.auth.models import Group, Permission, User
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import SystemConfig, UserAuditLog
from accounts.rbac import ROLE_DASHBOARD_KEY, ensure_catalogue, reset_permissions
from licensing.models import ApiLog, ExternalServiceToken


def member_of(username, *group_names, **kwargs):
    user = User.objects.create_user(username=username, password='Secret@123', **kwargs)
    for name in group_names:
        group, _ = Group.objects.get_or_create(name=name)
        user.groups.add(group)
    return user


class ConsoleTestCase(APITestCase):

    def setUp(self):
        ensure_catalogue()
        self.superadmin = member_of('root.admin', 'Super')
        self.admin = member_of('portal.admin', 'Admin')
        self.applicant = member_of('applicant', 'APPLICANT')


class AccessTest(ConsoleTestCase):

    def test_console_is_closed_to_applicants(self):
        self.client.force_authenticate(user=self.applicant)
        response = self.client.get('/api/accounts/admin/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['detail'], 'Forbidden')

    def test_superadmin_endpoints_are_closed_to_admins(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/accounts/admin/superadmins/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post('/api/accounts/admin/permissions/reset/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_is_unauthorized(self):
        response = self.client.get('/api/accounts/admin/groups/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class PermissionCatalogueTest(ConsoleTestCase):

    def test_catalogue_keys(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/accounts/admin/permissions/')
        keys = {row['permission_key'] for row in response.data}
        self.assertIn('licensing.view_applicantdetail', keys)
        self.assertIn('licensing.add_inspectionreport', keys)
        self.assertNotIn('auth.add_user', keys)

    def test_reset_applies_defaults(self):
        stray = Permission.objects.get(content_type__app_label='auth', codename='add_user')
        self.applicant.user_permissions.add(stray)

        self.client.force_authenticate(user=self.superadmin)
        response = self.client.post('/api/accounts/admin/permissions/reset/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        applicant_group = Group.objects.get(name='APPLICANT')
        self.assertTrue(applicant_group.permissions.filter(codename='add_businessprofile').exists())
        self.assertFalse(applicant_group.permissions.filter(codename='delete_applicantdetail').exists())
        self.assertEqual(Group.objects.get(name='Super').permissions.count(), response.data['count'])
        self.assertFalse(self.applicant.user_permissions.exists())
        self.assertTrue(UserAuditLog.objects.filter(action='permissions.reset').exists())

    def test_reset_is_repeatable(self):
        first = reset_permissions()
        self.assertEqual(reset_permissions(), first)


class GroupTest(ConsoleTestCase):

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.admin)

    def test_create_group_with_permissions(self):
        response = self.client.post('/api/accounts/admin/groups/', {
            'name': 'Auditors',
            'permissions': ['licensing.view_license', 'view_psidtracking', 'licensing.no_such_permission'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['permissions'], ['licensing.view_license', 'licensing.view_psidtracking'])
        self.assertTrue(UserAuditLog.objects.filter(action='group.create', actor=self.admin).exists())

    def test_group_name_rules(self):
        response = self.client.post('/api/accounts/admin/groups/', {'name': '  '}, format='json')
        self.assertEqual(response.data['message'], 'Group name is required.')
        response = self.client.post('/api/accounts/admin/groups/', {'name': 'APPLICANT'}, format='json')
        self.assertEqual(response.data['message'], 'Group name already exists.')

    def test_rename_and_delete(self):
        group = Group.objects.create(name='Temp')
        response = self.client.patch(f'/api/accounts/admin/groups/{group.id}/', {'name': 'Temporary'},
                                     format='json')
        self.assertEqual(response.data['name'], 'Temporary')

        response = self.client.delete(f'/api/accounts/admin/groups/{group.id}/')
        self.assertEqual(response.data['message'], 'Group deleted.')
        response = self.client.delete(f'/api/accounts/admin/groups/{group.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Group not found.')


class UserManagementTest(ConsoleTestCase):

    def test_admin_does_not_see_superadmins(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/accounts/admin/users/')
        usernames = {row['username'] for row in response.data}
        self.assertNotIn('root.admin', usernames)
        self.assertIn('applicant', usernames)

    def test_admin_cannot_touch_superadmin(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(f'/api/accounts/admin/users/{self.superadmin.id}/', {'first_name': 'X'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['message'], 'Cannot modify SuperAdmin accounts.')

    def test_admin_cannot_grant_super(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(f'/api/accounts/admin/users/{self.applicant.id}/', {'groups': ['Super']},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['message'], 'Only SuperAdmin can grant the Super role.')

    def test_admin_updates_groups_and_direct_permissions(self):
        Group.objects.create(name='LSO')
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(f'/api/accounts/admin/users/{self.applicant.id}/', {
            'groups': ['LSO'],
            'direct_permissions': ['licensing.view_license'],
            'is_active': False,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['groups'], ['LSO'])
        self.assertEqual(response.data['direct_permissions'], ['licensing.view_license'])
        self.assertFalse(response.data['is_active'])

    def test_only_superadmin_deletes_users(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(f'/api/accounts/admin/users/{self.applicant.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.superadmin)
        response = self.client.delete(f'/api/accounts/admin/users/{self.superadmin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/accounts/admin/users/{self.applicant.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=self.applicant.id).exists())

    def test_reset_password_applies_policy(self):
        self.client.force_authenticate(user=self.admin)
        url = f'/api/accounts/admin/users/{self.applicant.id}/reset-password/'
        response = self.client.post(url, {'new_password': 'weak'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'new_password': 'Stronger1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.applicant.refresh_from_db()
        self.assertTrue(self.applicant.check_password('Stronger1'))


class SuperadminTest(ConsoleTestCase):

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.superadmin)

    def test_create_superadmin(self):
        response = self.client.post('/api/accounts/admin/superadmins/',
                                    {'username': 'second.root', 'password': 'Secret@123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='second.root')
        self.assertTrue(user.is_superuser)
        self.assertEqual(set(user.groups.values_list('name', flat=True)), {'Super', 'Admin'})

    def test_last_superadmin_cannot_be_removed(self):
        response = self.client.delete(f'/api/accounts/admin/superadmins/{self.superadmin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Cannot delete the last SuperAdmin.')

    def test_deactivate_superadmin(self):
        other = member_of('other.root', 'Super')
        response = self.client.delete(f'/api/accounts/admin/superadmins/{other.id}/')
        self.assertEqual(response.data['message'], 'SuperAdmin deactivated.')
        other.refresh_from_db()
        self.assertFalse(other.is_active)
        self.assertFalse(other.groups.filter(name='Super').exists())


class RoleDashboardTest(ConsoleTestCase):

    def test_map_is_cleaned_and_served(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.put('/api/accounts/admin/role-dashboard/', {
            'role_dashboard_map': {'LSO': ' /lso ', 'DO': 'no-slash', 'DG': 5},
        }, format='json')
        self.assertEqual(response.data, {'LSO': '/lso'})
        self.assertEqual(SystemConfig.get_value(ROLE_DASHBOARD_KEY), {'LSO': '/lso'})

        self.client.force_authenticate(user=self.applicant)
        response = self.client.get('/api/accounts/role-dashboard/')
        self.assertEqual(response.data, {'LSO': '/lso'})


class LogBrowserTest(ConsoleTestCase):

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.admin)

    def test_api_logs_are_paged_and_filtered(self):
        for code in (200, 200, 400):
            ApiLog.objects.create(service_name='ePay', endpoint='https://epay.example.test/psid',
                                  status_code=code)
        response = self.client.get('/api/accounts/admin/api-logs/', {'status': '200', 'limit': '1'})
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['limit'], 1)

    def test_service_config_hides_secret(self):
        response = self.client.post('/api/accounts/admin/service-configs/', {
            'service_name': 'ePay',
            'base_url': 'https://epay.example.test',
            'auth_endpoint': 'https://epay.example.test/auth',
            'generate_psid_endpoint': 'https://epay.example.test/psid',
            'client_id': 'client',
            'client_secret': 'secret',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('client_secret', response.data)

        response = self.client.post('/api/accounts/admin/service-configs/', {}, format='json')
        self.assertEqual(response.data['message'], 'service_name is required.')

    def test_external_token_expiry_is_corrected(self):
        token = ExternalServiceToken.objects.create(service_name='ePay', access_token='t',
                                                    expires_at=timezone.now() - timedelta(days=1))
        response = self.client.get('/api/accounts/admin/external-tokens/')
        token.refresh_from_db()
        self.assertEqual(response.data[0]['expires_at'], token.created_at + timedelta(hours=1))
