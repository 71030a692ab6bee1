"""
Registration, sign-in, captcha, account recovery, inspectors and social
sign-in.
"""
from unittest.mock import MagicMock, patch

import requests
from django.contrib.auth.models import Group, User
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from accounts import oauth
from accounts.captcha import CACHE_PREFIX, captcha_error, issue_captcha
from accounts.models import SocialAccount
from accounts.password_policy import password_policy_error
from licensing.models import ApplicantDetail, District, Division, PSIDTracking, UserProfile


class PasswordPolicyTest(SimpleTestCase):

    def test_policy_messages(self):
        self.assertEqual(password_policy_error('Ab1'), "Password must be 8-128 characters long.")
        self.assertEqual(password_policy_error('ABCDEFG1'), "Password must include at least one lowercase letter.")
        self.assertEqual(password_policy_error('abcdefg1'), "Password must include at least one uppercase letter.")
        self.assertEqual(password_policy_error('Abcdefgh'), "Password must include at least one number.")
        self.assertIsNone(password_policy_error('Abcdefg1'))
        self.assertIsNotNone(password_policy_error(None))


class CaptchaTest(TestCase):

    def setUp(self):
        cache.clear()

    def test_issue_and_solve_once(self):
        image, token = issue_captcha()
        self.assertTrue(image.startswith('data:image/png;base64,'))
        answer = cache.get(CACHE_PREFIX + token)

        self.assertIsNone(captcha_error({'captcha_token': token, 'captcha_input': answer.lower()}))
        self.assertEqual(captcha_error({'captcha_token': token, 'captcha_input': answer}), "Invalid captcha.")

    def test_wrong_answer(self):
        _, token = issue_captcha()
        self.assertEqual(captcha_error({'captcha_token': token, 'captcha_input': '?????'}), "Invalid captcha.")

    @override_settings(CAPTCHA_REQUIRED=True)
    def test_required_when_configured(self):
        self.assertEqual(captcha_error({}), "Captcha is required.")

    def test_optional_by_default(self):
        self.assertIsNone(captcha_error({}))


class RegisterLoginTest(APITestCase):

    def setUp(self):
        cache.clear()

    def register(self, **changes):
        payload = {'username': 'new.applicant', 'password': 'Secret@123', 'first_name': 'Hina'}
        payload.update(changes)
        return self.client.post('/api/accounts/register/', payload, format='json')

    def test_register_joins_applicant_group(self):
        response = self.register()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='new.applicant')
        self.assertTrue(user.groups.filter(name='APPLICANT').exists())
        self.assertNotIn('password', response.data)

    def test_register_rejects_duplicate_username(self):
        self.register()
        response = self.register()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['username'][0], "This username is already taken.")

    def test_register_applies_password_policy(self):
        response = self.register(password='weakpass')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_register_requires_credentials(self):
        response = self.client.post('/api/accounts/register/', {'username': 'x'}, format='json')
        self.assertEqual(response.data['error'], "Username and password are required.")

    def test_login_returns_tokens(self):
        self.register()
        response = self.client.post('/api/accounts/login/',
                                    {'username': 'new.applicant', 'password': 'Secret@123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_login_failures(self):
        User.objects.create_user(username='known', password='Secret@123')
        User.objects.create_user(username='disabled', password='Secret@123', is_active=False)

        response = self.client.post('/api/accounts/login/', {'username': 'ghost', 'password': 'x'}, format='json')
        self.assertEqual(response.data['error'], "User does not exist. Please sign up.")
        response = self.client.post('/api/accounts/login/', {'username': 'known', 'password': 'wrong'},
                                    format='json')
        self.assertEqual(response.data['error'], "Invalid credentials")
        response = self.client.post('/api/accounts/login/', {'username': 'disabled', 'password': 'Secret@123'},
                                    format='json')
        self.assertEqual(response.data['error'], "Invalid credentials")

    def test_login_with_bad_captcha(self):
        User.objects.create_user(username='known', password='Secret@123')
        response = self.client.post('/api/accounts/login/', {
            'username': 'known', 'password': 'Secret@123', 'captcha_token': 'expired', 'captcha_input': 'ABCDE',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Invalid captcha.")

    def test_generate_captcha_endpoint(self):
        response = self.client.get('/api/accounts/generate-captcha/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('captcha_token', response.data)


class ProfileTest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='profile.user', password='Secret@123')
        self.client.force_authenticate(user=self.user)

    def test_profile_update_keeps_username(self):
        response = self.client.patch('/api/accounts/profile/', {'first_name': 'Zara', 'username': 'hijack'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.first_name, 'Zara')
        self.assertEqual(self.user.username, 'profile.user')

    def test_change_password(self):
        response = self.client.post('/api/accounts/reset-password2/',
                                    {'current_password': 'wrong', 'new_password': 'Newpass@123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/accounts/reset-password2/',
                                    {'current_password': 'Secret@123', 'new_password': 'Newpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Newpass123'))


class AccountRecoveryTest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='forgetful', password='Secret@123')
        self.applicant = ApplicantDetail.objects.create(
            registration_for='Consumer', first_name='Asad', gender='Male', cnic='35202-3333333-3',
            mobile_no='3003334444', tracking_number='LHR-CON-001', created_by=self.user)
        self.details = {'mobile_number': '3003334444', 'cnic': '35202-3333333-3'}

    def test_find_by_tracking_number(self):
        response = self.client.post('/api/accounts/find-user/', dict(self.details, tracking_number='LHR-CON-001'),
                                    format='json')
        self.assertEqual(response.data, {'username': 'forgetful'})

    def test_find_by_psid(self):
        PSIDTracking.objects.create(
            applicant=self.applicant, dept_transaction_id='5', due_date='2026-10-01',
            expiry_date='2026-10-15T23:59:59Z', amount_within_due_date=100000, consumer_name='Asad',
            mobile_no='03003334444', cnic='3520233333333', consumer_number='PSID-77')
        response = self.client.post('/api/accounts/find-user/', dict(self.details, psid='PSID-77'), format='json')
        self.assertEqual(response.data, {'username': 'forgetful'})

    def test_find_requires_details(self):
        response = self.client.post('/api/accounts/find-user/', {'cnic': '35202-3333333-3'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_find_with_wrong_mobile(self):
        response = self.client.post('/api/accounts/find-user/', {
            'mobile_number': '3000000000', 'cnic': '35202-3333333-3', 'tracking_number': 'LHR-CON-001',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_reset_forgotten_password(self):
        payload = dict(self.details, tracking_number='LHR-CON-001', username='forgetful')
        response = self.client.post('/api/accounts/reset-forgot-password/', dict(payload, new_password='short'),
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/accounts/reset-forgot-password/',
                                    dict(payload, new_password='Recovered1'), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Recovered1'))


class InspectorTest(APITestCase):
    """District officers manage inspectors of their own district."""

    def setUp(self):
        division = Division.objects.create(division_name='Multan', division_code='MLT')
        self.district = District.objects.create(district_id=20, division=division, district_name='Multan',
                                                district_code='MLT-20', short_name='MLT')
        self.do_user = User.objects.create_user(username='do.mlt', password='Secret@123')
        self.do_user.groups.add(Group.objects.create(name='DO'))
        UserProfile.objects.create(user=self.do_user, district=self.district)
        self.client.force_authenticate(user=self.do_user)

    def test_create_update_and_list(self):
        response = self.client.post('/api/accounts/create-update-inpsector-user/',
                                    {'username': 'inspector.mlt', 'password': 'Secret@123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        inspector = User.objects.get(username='inspector.mlt')
        self.assertEqual(inspector.userprofile.district, self.district)

        response = self.client.post('/api/accounts/create-update-inpsector-user/', {
            'user_id': inspector.id, 'username': 'inspector.mlt', 'first_name': 'Kamran'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get('/api/accounts/list-inspectors/')
        self.assertEqual(response.data, [{'id': inspector.id, 'username': 'inspector.mlt',
                                          'first_name': 'Kamran', 'last_name': ''}])

    def test_duplicate_username(self):
        User.objects.create_user(username='taken', password='Secret@123')
        response = self.client.post('/api/accounts/create-update-inpsector-user/',
                                    {'username': 'taken', 'password': 'Secret@123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_do_is_refused(self):
        self.client.force_authenticate(user=User.objects.create_user(username='lso.1', password='Secret@123'))
        response = self.client.get('/api/accounts/list-inspectors/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


def http_reply(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


@override_settings(GITHUB_CLIENT_ID='gh-client', GITHUB_CLIENT_SECRET='gh-secret',
                   GITHUB_REDIRECT_URI='https://portal.example.test/oauth/github')
class OAuthTest(APITestCase):

    def test_auth_url_carries_signed_state(self):
        response = self.client.get('/api/accounts/oauth/github/auth-url/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('client_id=gh-client', response.data['auth_url'])
        self.assertTrue(oauth.verify_state('github', response.data['state']))
        self.assertFalse(oauth.verify_state('google', response.data['state']))

    def test_forged_state_is_rejected(self):
        response = self.client.post('/api/accounts/oauth/github/callback/', {'code': 'abc', 'state': 'forged'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('accounts.oauth.requests.get')
    @patch('accounts.oauth.requests.post')
    def test_callback_creates_applicant_then_reuses_link(self, mock_post, mock_get):
        mock_post.return_value = http_reply({'access_token': 'gh-token'})
        mock_get.side_effect = lambda url, **kwargs: http_reply(
            [{'email': 'dev@example.test', 'primary': True, 'verified': True}] if url.endswith('/emails')
            else {'id': 4242, 'login': 'octodev', 'name': 'Octo Dev', 'email': None})

        payload = {'code': 'abc', 'state': oauth.make_state('github')}
        response = self.client.post('/api/accounts/oauth/github/callback/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['created'])
        self.assertIn('access', response.data)

        user = User.objects.get(email='dev@example.test')
        self.assertEqual(user.username, 'dev')
        self.assertFalse(user.has_usable_password())
        self.assertTrue(user.groups.filter(name='APPLICANT').exists())

        payload['state'] = oauth.make_state('github')
        response = self.client.post('/api/accounts/oauth/github/callback/', payload, format='json')
        self.assertFalse(response.data['created'])
        self.assertEqual(SocialAccount.objects.count(), 1)

    @patch('accounts.oauth.requests.post')
    def test_provider_failure(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('down')
        payload = {'code': 'abc', 'state': oauth.make_state('github')}
        response = self.client.post('/api/accounts/oauth/github/callback/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
