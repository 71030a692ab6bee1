"""
PITB e-Pay (PLMIS) integration.

Outbound: PSID generation and status checks, authenticated with a bearer
token cached in ExternalServiceToken. Inbound: the gateway takes a portal
token from ``plmis-token/`` and posts payment intimations back.
Every exchange is recorded in ApiLog.
"""
import json
import logging
from datetime import datetime, timedelta, timezone as dt_timezone

import requests
from django.conf import settings
from django.http import QueryDict
from django.shortcuts import get_object_or_404
from django.utils import timezone
from oauth2_provider.views import TokenView
from requests.exceptions import RequestException
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from licensing.authentication import CustomTokenAuthentication
from licensing.models import ApiLog, ApplicantDetail, BusinessProfile, ExternalServiceToken, PSIDTracking, \
    ServiceConfiguration
from licensing.services.cache import invalidate_applicant
from licensing.services.fees import compute_fee, get_or_create_unsettled_fee

logger = logging.getLogger(__name__)

GRACE_PERIOD_DAYS = 15
GATEWAY_TIMEOUT = 30
ACCOUNT_HEAD_NAME = "Initial Environmental Examination and Environmental Impact Assessment Review Fee"
ACCOUNT_NUMBER = "C03855"


@api_view(['POST'])
@authentication_classes([])
@permission_classes([])
def plmis_token_view(request):
    """
    Client-credentials token for the gateway, wrapped in the gateway's own
    response envelope.
    """
    client_id = request.data.get('clientId')
    client_secret = request.data.get('clientSecretKey')
    grant_type = request.data.get('grant_type', 'client_credentials')
    credentials = QueryDict(mutable=True)
    credentials.update({
        'client_id': client_id or '',
        'client_secret': client_secret or '',
        'grant_type': grant_type,
    })
    request._request.POST = credentials
    response = TokenView.as_view()(request._request)
    try:
        response_data = json.loads(response.content)
    except ValueError:
        logger.warning("Token endpoint returned a non-JSON body for client %s", client_id)
        return Response({'status': 'Fail', 'message': 'Token could not be issued.', 'content': []},
                        status=status.HTTP_400_BAD_REQUEST)

    status_text = "Fail" if 'error' in response_data else "OK"
    expires_in = response_data.get("expires_in", 0)
    expiry_date = timezone.localtime() + timedelta(seconds=expires_in)

    return Response({
        "status": status_text,
        "message": response_data.get("error_description", "") if status_text == "Fail" else "",
        "content": [
            {
                "clientId": client_id,
                "token": {
                    "tokenType": response_data.get("token_type", ""),
                    "accessToken": response_data.get("access_token", ""),
                },
                "expiryDate": expiry_date.strftime('%Y-%m-%d %H:%M:%S'),
            }
        ]
    })


def call_gateway(service_name, endpoint, payload, headers=None):
    """
    POST ``payload`` to the gateway and log the exchange. Returns
    ``(status_code, data)``; network failures come back as status 0.
    """
    try:
        resp = requests.post(endpoint, json=payload, headers=headers, timeout=GATEWAY_TIMEOUT)
        status_code = resp.status_code
        try:
            data = resp.json()
        except ValueError:
            data = {"error": "Could not parse JSON from gateway", "body": resp.text}
    except RequestException as req_err:
        logger.warning("Gateway call to %s failed: %s", endpoint, req_err)
        status_code = 0
        data = {"error": "Request to gateway failed", "details": str(req_err)}

    ApiLog.objects.create(
        service_name=service_name,
        endpoint=endpoint,
        request_data=payload,
        response_data=data,
        status_code=status_code,
    )
    if not isinstance(data, dict):
        data = {"content": data}
    return status_code, data


def get_or_refresh_token(config):
    """
    Newest unexpired token of the service, else a fresh one from
    ``auth_endpoint``. The gateway answers with
    ``{"status": "OK", "content": [{"token": {"accessToken": ...}, "expiryDate": <epoch ms>}]}``.
    """
    token_obj = ExternalServiceToken.objects.filter(service_name=config.service_name).order_by("-created_at").first()
    if token_obj and not token_obj.is_expired():
        return token_obj.access_token

    payload = {"clientId": config.client_id, "clientSecretKey": config.client_secret}
    _, data = call_gateway(config.service_name, config.auth_endpoint, payload)

    content_list = data.get("content") or []
    if content_list and isinstance(content_list[0], dict):
        first_item = content_list[0]
        new_token = (first_item.get("token") or {}).get("accessToken", "")
        expiry_ms = first_item.get("expiryDate") or 0
    else:
        new_token = ""
        expiry_ms = 0

    if isinstance(expiry_ms, (int, float)) and expiry_ms > 0:
        expiry_dt = datetime.fromtimestamp(expiry_ms / 1000.0, tz=dt_timezone.utc)
    else:
        expiry_dt = timezone.now() + timedelta(seconds=3600)

    token_obj = ExternalServiceToken.objects.create(
        service_name=config.service_name,
        access_token=new_token,
        expires_at=expiry_dt,
    )
    return token_obj.access_token


def get_gateway_config():
    return ServiceConfiguration.objects.filter(service_name=settings.PITB_SERVICE_NAME).first()


def gateway_not_configured():
    logger.error("Service configuration %s is missing", settings.PITB_SERVICE_NAME)
    return Response({"status": "error", "message": "Payment gateway is not configured."},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def gateway_headers(config):
    return {
        "Authorization": f"Bearer {get_or_refresh_token(config)}",
        "Content-Type": "application/json",
    }


def log_and_respond(request, response_data, status_code):
    ApiLog.objects.create(
        service_name="payment_intimation_exposed",
        endpoint=request.build_absolute_uri(),
        request_data=request.data,
        response_data=response_data,
        status_code=status_code,
    )
    return Response(response_data, status=status_code)


def fail(request, message):
    return log_and_respond(request, {"status": "Fail", "message": message}, status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@authentication_classes([CustomTokenAuthentication])
@permission_classes([AllowAny])
def payment_intimation_view(request):
    """Payment intimation posted by the gateway once a PSID is paid at a bank."""
    data = request.data
    required_fields = ['consumerNumber', 'psidStatus', 'deptTransactionId', 'amountPaid', 'paidDate', 'paidTime',
                       'bankCode']
    for field in required_fields:
        if data.get(field) in (None, ''):
            return fail(request, f"{field} is required and cannot be empty")

    consumer_number = str(data.get('consumerNumber')).strip()
    if not consumer_number:
        return fail(request, "Consumer number cannot be empty or invalid")

    dept_transaction_id = str(data.get('deptTransactionId')).strip()
    if not dept_transaction_id:
        return fail(request, "Department transaction ID/Challan number cannot be empty")

    psid_status = data.get('psidStatus')
    if psid_status != "PAID":
        return fail(request, "PSID status must be 'PAID'")

    try:
        paid_date = datetime.strptime(str(data['paidDate']), '%Y-%m-%d').date()
    except ValueError:
        return fail(request, "Paid date must be in YYYY-MM-DD format")

    try:
        paid_time = datetime.strptime(str(data['paidTime']), '%H:%M:%S').time()
    except ValueError:
        return fail(request, "Paid time must be in HH:MM:SS format")

    try:
        amount_paid = float(data['amountPaid'])
    except (TypeError, ValueError):
        amount_paid = 0
    if amount_paid <= 0:
        return fail(request, "Amount paid must be a positive number")

    bank_code = str(data['bankCode'])
    if not bank_code.isalnum():
        return fail(request, "Bank code cannot contain special characters")

    psid_record = PSIDTracking.objects.filter(
        consumer_number=consumer_number,
        dept_transaction_id=dept_transaction_id,
    ).order_by('-created_at').first()
    if not psid_record:
        return fail(request, "No matching PSID record found for the provided consumer number and challan number")

    if psid_record.payment_status == "PAID":
        return log_and_respond(request, {"status": "OK", "message": "PSID is already marked as PAID"},
                               status.HTTP_200_OK)

    if float(psid_record.amount_within_due_date) != amount_paid:
        return fail(request, "Amount paid does not match the expected amount")

    psid_record.payment_status = psid_status
    psid_record.amount_paid = amount_paid
    psid_record.paid_date = paid_date
    psid_record.paid_time = paid_time
    psid_record.bank_code = bank_code
    psid_record.message = "Payment intimated successfully"
    psid_record.save()

    if psid_record.applicant:
        applicant = psid_record.applicant
        applicant.application_status = 'Submitted'
        applicant.save()
        invalidate_applicant(applicant.pk)

    logger.info("Payment intimated for PSID %s", consumer_number)
    return log_and_respond(request, {"status": "OK", "message": "Payment intimated successfully"},
                           status.HTTP_200_OK)


class CheckPSIDPaymentStatus(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        applicant_id = request.GET.get("applicant_id")
        if not applicant_id:
            return Response({"status": "error", "message": "Missing applicant_id"},
                            status=status.HTTP_400_BAD_REQUEST)

        applicant = get_object_or_404(ApplicantDetail, id=applicant_id, created_by=request.user)
        psid_record = PSIDTracking.objects.filter(applicant=applicant).order_by('-created_at').first()
        if not psid_record or not psid_record.consumer_number:
            return Response({"status": "error", "message": "No PSID found for the applicant"},
                            status=status.HTTP_404_NOT_FOUND)

        config = get_gateway_config()
        if config is None:
            return gateway_not_configured()

        payload = {"consumerNumber": psid_record.consumer_number}
        status_code, response_data = call_gateway(config.service_name, config.transaction_status_endpoint,
                                                  payload, gateway_headers(config))
        if status_code == 0:
            return Response({"status": "error", "message": "Payment gateway is unreachable.",
                             "details": response_data}, status=status.HTTP_502_BAD_GATEWAY)

        if status_code == 200 and response_data.get("status") == "OK":
            content = (response_data.get("content") or [{}])[0]
            psid_status = content.get("psidStatus", "UNPAID")
            amount_paid = content.get("amountPaid")
            paid_date = content.get("paidDate")
            paid_time = content.get("paidTime")
            bank_code = content.get("bankCode")

            psid_record.payment_status = psid_status
            if psid_status == "PAID":
                psid_record.amount_paid = amount_paid
                psid_record.paid_date = paid_date
                psid_record.paid_time = paid_time
                psid_record.bank_code = bank_code
            psid_record.save()

            return Response({
                "status": "success",
                "psid_status": psid_status,
                "amount_paid": amount_paid,
                "paid_date": paid_date,
                "paid_time": paid_time,
                "bank_code": bank_code,
                "message": response_data.get("message", ""),
            }, status=status.HTTP_200_OK)

        return Response({
            "status": "error",
            "message": response_data.get("message") or "Unable to fetch payment status",
            "details": response_data,
        }, status=status_code if status_code >= 400 else status.HTTP_400_BAD_REQUEST)


def psid_response(applicant, psid_record):
    return {
        'psid': psid_record.consumer_number,
        'applicant_name': applicant.full_name,
        'tracking_number': applicant.tracking_number,
        'amount_within_due_date': psid_record.amount_within_due_date,
        'due_date': psid_record.due_date,
        'expiry_date': timezone.localtime(psid_record.expiry_date),
    }


class GeneratePsid(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        applicant_id = request.GET.get("applicant_id")
        if not applicant_id:
            return Response({"error": "Missing applicant_id"}, status=status.HTTP_400_BAD_REQUEST)

        applicant = get_object_or_404(ApplicantDetail, id=applicant_id, created_by=request.user,
                                      application_status__in=['Created', 'Fee Challan'])

        existing_psid_record = PSIDTracking.objects.filter(
            applicant=applicant, consumer_number__isnull=False).order_by('-id').first()
        if existing_psid_record and existing_psid_record.expiry_date >= timezone.now():
            return Response(psid_response(applicant, existing_psid_record))

        fee = compute_fee(applicant)
        get_or_create_unsettled_fee(applicant, fee)
        last_fee_obj = applicant.applicantfees.order_by('-id').first()

        config = get_gateway_config()
        if config is None:
            return gateway_not_configured()

        now = timezone.localtime()
        due_date = (now + timedelta(days=GRACE_PERIOD_DAYS)).date()
        expiry_datetime = (now + timedelta(days=GRACE_PERIOD_DAYS)).replace(hour=23, minute=59, second=59,
                                                                             microsecond=0)
        fee_amount = last_fee_obj.fee_amount
        consumer_name = applicant.full_name
        full_mobile = f"0{applicant.mobile_no}"
        cnic_value = applicant.cnic.replace("-", "")
        applicant_email = applicant.email or f"{cnic_value}@cnic.pk"

        business_profile = BusinessProfile.objects.filter(applicant=applicant).select_related('district').first()
        district_id_val = 0
        if business_profile and business_profile.district:
            district_id_val = business_profile.district.pitb_district_id or 0

        dept_transaction_id = str(last_fee_obj.id)
        payload = {
            "deptTransactionId": dept_transaction_id,
            "dueDate": str(due_date),
            "expiryDate": expiry_datetime.strftime("%Y-%m-%d %H:%M:%S"),
            "amountWithinDueDate": str(fee_amount),
            "amountAfterDueDate": "",
            "consumerName": consumer_name,
            "mobileNo": full_mobile,
            "cnic": cnic_value,
            "districtID": str(district_id_val),
            "email": applicant_email,
            "amountBifurcation": [
                {
                    "accountHeadName": ACCOUNT_HEAD_NAME,
                    "accountNumber": ACCOUNT_NUMBER,
                    "amountToTransfer": str(fee_amount),
                }
            ],
        }

        status_code, response_data = call_gateway(config.service_name, config.generate_psid_endpoint,
                                                  payload, gateway_headers(config))
        if status_code == 0:
            return Response({"error": "Payment gateway is unreachable.", "details": response_data},
                            status=status.HTTP_502_BAD_GATEWAY)

        content_list = response_data.get("content") or []
        consumer_number = content_list[0].get("consumerNumber") if content_list else None
        if status_code != 200 or response_data.get("status") != "OK" or not consumer_number:
            logger.warning("PSID generation failed for applicant %s: %s", applicant.pk, response_data)
            return Response({"error": "PSID Generation Failed", "details": response_data},
                            status=status.HTTP_400_BAD_REQUEST)

        psid_record = PSIDTracking.objects.create(
            applicant=applicant,
            dept_transaction_id=dept_transaction_id,
            due_date=due_date,
            expiry_date=expiry_datetime,
            amount_within_due_date=fee_amount,
            amount_after_due_date=0,
            consumer_name=consumer_name,
            mobile_no=full_mobile,
            cnic=cnic_value,
            email=applicant_email,
            district_id=district_id_val,
            amount_bifurcation=payload["amountBifurcation"],
            consumer_number=consumer_number,
            status="OK",
            message=response_data.get("message") or "PSID generated successfully",
            created_by=request.user,
        )

        applicant.application_status = 'Fee Challan'
        applicant.save()
        invalidate_applicant(applicant.pk)

        logger.info("PSID %s generated for applicant %s", consumer_number, applicant.pk)
        return Response(psid_response(applicant, psid_record))
