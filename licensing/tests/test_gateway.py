"""
PSID generation, status checks and payment intimations against a mocked
PITB e-Pay gateway.
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.contrib.auth.models import User
from django.test import override_settings
from django.utils import timezone
from oauth2_provider.models import Application
from rest_framework import status
from rest_framework.test import APITestCase

from licensing.models import ApiLog, ApplicantDetail, ApplicantFee, ExternalServiceToken, Producer, PSIDTracking, \
    ServiceConfiguration


def gateway_reply(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def token_reply():
    expiry_ms = (timezone.now() + timedelta(hours=1)).timestamp() * 1000
    return gateway_reply({
        "status": "OK",
        "content": [{"token": {"accessToken": "gateway-token"}, "expiryDate": expiry_ms}],
    })


@override_settings(PITB_SERVICE_NAME='ePay')
class GatewayTestCase(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='applicant', password='Secret@123')
        self.applicant = ApplicantDetail.objects.create(
            registration_for='Producer', first_name='Sana', last_name='Iqbal', gender='Female',
            cnic='35202-7654321-2', mobile_no='3217654321', created_by=self.user)
        Producer.objects.create(applicant=self.applicant, number_of_machines='3')
        ServiceConfiguration.objects.create(
            service_name='ePay',
            base_url='https://epay.example.test',
            auth_endpoint='https://epay.example.test/auth',
            generate_psid_endpoint='https://epay.example.test/psid',
            transaction_status_endpoint='https://epay.example.test/status',
            client_id='client',
            client_secret='secret',
        )


class GeneratePsidTest(GatewayTestCase):

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.user)

    @patch('licensing.controllers.pitb.requests.post')
    def test_psid_is_generated_and_logged(self, mock_post):
        mock_post.side_effect = [
            token_reply(),
            gateway_reply({"status": "OK", "message": "Generated", "content": [{"consumerNumber": "PSID-0001"}]}),
        ]

        response = self.client.get('/api/pmc/generate-psid/', {'applicant_id': self.applicant.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['psid'], 'PSID-0001')

        psid = PSIDTracking.objects.get(consumer_number='PSID-0001')
        self.assertEqual(psid.amount_within_due_date, Decimal('50000'))
        self.assertEqual(psid.cnic, '3520276543212')
        self.assertEqual(psid.mobile_no, '03217654321')
        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.application_status, 'Fee Challan')
        self.assertEqual(ApiLog.objects.count(), 2)
        self.assertEqual(ExternalServiceToken.objects.get().access_token, 'gateway-token')

        sent_payload = mock_post.call_args_list[1].kwargs['json']
        self.assertEqual(sent_payload['amountBifurcation'][0]['accountNumber'], 'C03855')
        self.assertEqual(mock_post.call_args_list[1].kwargs['headers']['Authorization'], 'Bearer gateway-token')

    @patch('licensing.controllers.pitb.requests.post')
    def test_unexpired_psid_is_reused(self, mock_post):
        mock_post.side_effect = [
            token_reply(),
            gateway_reply({"status": "OK", "content": [{"consumerNumber": "PSID-0002"}]}),
        ]
        self.client.get('/api/pmc/generate-psid/', {'applicant_id': self.applicant.id})
        response = self.client.get('/api/pmc/generate-psid/', {'applicant_id': self.applicant.id})

        self.assertEqual(response.data['psid'], 'PSID-0002')
        self.assertEqual(mock_post.call_count, 2)
        self.assertEqual(ApplicantFee.objects.filter(applicant=self.applicant).count(), 1)

    @patch('licensing.controllers.pitb.requests.post')
    def test_gateway_rejection(self, mock_post):
        mock_post.side_effect = [token_reply(), gateway_reply({"status": "Fail", "message": "Bad CNIC"})]
        response = self.client.get('/api/pmc/generate-psid/', {'applicant_id': self.applicant.id})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'PSID Generation Failed')
        self.assertFalse(PSIDTracking.objects.exists())

    @patch('licensing.controllers.pitb.requests.post')
    def test_gateway_unreachable(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('connection refused')
        response = self.client.get('/api/pmc/generate-psid/', {'applicant_id': self.applicant.id})
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(ApiLog.objects.filter(status_code=0).count(), 2)

    def test_missing_applicant_id(self):
        response = self.client.get('/api/pmc/generate-psid/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_users_application(self):
        self.client.force_authenticate(user=User.objects.create_user(username='intruder', password='Secret@123'))
        response = self.client.get('/api/pmc/generate-psid/', {'applicant_id': self.applicant.id})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class PsidStatusTest(GatewayTestCase):

    def setUp(self):
        super().setUp()
        self.psid = PSIDTracking.objects.create(
            applicant=self.applicant, dept_transaction_id='11', due_date=timezone.localdate(),
            expiry_date=timezone.now() + timedelta(days=15), amount_within_due_date=Decimal('50000'),
            consumer_name='Sana Iqbal', mobile_no='03217654321', cnic='3520276543212',
            consumer_number='PSID-0100', status='OK')
        ExternalServiceToken.objects.create(service_name='ePay', access_token='cached-token',
                                            expires_at=timezone.now() + timedelta(hours=1))
        self.client.force_authenticate(user=self.user)

    @patch('licensing.controllers.pitb.requests.post')
    def test_paid_status_is_stored(self, mock_post):
        mock_post.return_value = gateway_reply({
            "status": "OK",
            "content": [{"psidStatus": "PAID", "amountPaid": "50000", "paidDate": "2026-10-01",
                         "paidTime": "10:15:00", "bankCode": "NBP"}],
        })
        response = self.client.get('/api/pmc/check-psid-status/', {'applicant_id': self.applicant.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['psid_status'], 'PAID')
        self.assertEqual(mock_post.call_count, 1)

        self.psid.refresh_from_db()
        self.assertEqual(self.psid.payment_status, 'PAID')
        self.assertEqual(self.psid.bank_code, 'NBP')

    def test_no_psid(self):
        self.psid.delete()
        response = self.client.get('/api/pmc/check-psid-status/', {'applicant_id': self.applicant.id})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class PaymentIntimationTest(GatewayTestCase):

    def setUp(self):
        super().setUp()
        self.psid = PSIDTracking.objects.create(
            applicant=self.applicant, dept_transaction_id='21', due_date=timezone.localdate(),
            expiry_date=timezone.now() + timedelta(days=15), amount_within_due_date=Decimal('50000'),
            consumer_name='Sana Iqbal', mobile_no='03217654321', cnic='3520276543212',
            consumer_number='PSID-0200', status='OK')
        self.payload = {
            'consumerNumber': 'PSID-0200',
            'psidStatus': 'PAID',
            'deptTransactionId': '21',
            'amountPaid': '50000',
            'paidDate': '2026-10-01',
            'paidTime': '11:30:00',
            'bankCode': 'HBL01',
        }

    def intimate(self, **changes):
        return self.client.post('/api/pmc/payment-intimation/', dict(self.payload, **changes), format='json')

    def test_payment_is_recorded_and_application_submitted(self):
        response = self.intimate()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Payment intimated successfully')

        self.psid.refresh_from_db()
        self.assertEqual(self.psid.payment_status, 'PAID')
        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.application_status, 'Submitted')
        self.assertEqual(self.applicant.assigned_group, 'LSO')
        self.assertTrue(ApiLog.objects.filter(service_name='payment_intimation_exposed').exists())

    def test_repeat_intimation_is_acknowledged(self):
        self.intimate()
        response = self.intimate()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'PSID is already marked as PAID')

    def test_validation_failures(self):
        cases = [
            ({'bankCode': ''}, 'bankCode is required and cannot be empty'),
            ({'psidStatus': 'UNPAID'}, "PSID status must be 'PAID'"),
            ({'paidDate': '01/10/2026'}, 'Paid date must be in YYYY-MM-DD format'),
            ({'paidTime': '11:30'}, 'Paid time must be in HH:MM:SS format'),
            ({'amountPaid': '-1'}, 'Amount paid must be a positive number'),
            ({'amountPaid': 0}, 'Amount paid must be a positive number'),
            ({'bankCode': 'HB-L'}, 'Bank code cannot contain special characters'),
            ({'amountPaid': '40000'}, 'Amount paid does not match the expected amount'),
            ({'consumerNumber': 'PSID-9999'},
             'No matching PSID record found for the provided consumer number and challan number'),
        ]
        for changes, message in cases:
            with self.subTest(changes=changes):
                response = self.intimate(**changes)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data['status'], 'Fail')
                self.assertEqual(response.data['message'], message)

    def test_unknown_bearer_token_is_rejected(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = self.intimate()
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class PlmisTokenTest(GatewayTestCase):

    def setUp(self):
        super().setUp()
        Application.objects.create(
            name='PITB e-Pay',
            client_id='pitb-client',
            client_secret='pitb-secret',
            client_type=Application.CLIENT_CONFIDENTIAL,
            authorization_grant_type=Application.GRANT_CLIENT_CREDENTIALS,
        )
        self.psid = PSIDTracking.objects.create(
            applicant=self.applicant, dept_transaction_id='31', due_date=timezone.localdate(),
            expiry_date=timezone.now() + timedelta(days=15), amount_within_due_date=Decimal('50000'),
            consumer_name='Sana Iqbal', mobile_no='03217654321', cnic='3520276543212',
            consumer_number='PSID-0300', status='OK')

    def request_token(self, secret='pitb-secret'):
        return self.client.post('/api/pmc/plmis-token/',
                                {'clientId': 'pitb-client', 'clientSecretKey': secret}, format='json')

    def test_issued_token_authorizes_intimation(self):
        response = self.request_token()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'OK')
        token = response.data['content'][0]['token']['accessToken']
        self.assertTrue(token)

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.post('/api/pmc/payment-intimation/', {
            'consumerNumber': 'PSID-0300',
            'psidStatus': 'PAID',
            'deptTransactionId': '31',
            'amountPaid': '50000',
            'paidDate': '2026-10-02',
            'paidTime': '09:00:00',
            'bankCode': 'MCB01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.psid.refresh_from_db()
        self.assertEqual(self.psid.payment_status, 'PAID')

    def test_wrong_secret(self):
        response = self.request_token(secret='not-the-secret')
        self.assertEqual(response.data['status'], 'Fail')
        self.assertEqual(response.data['content'][0]['token']['accessToken'], '')
