"""
RBAC administration console: permissions, groups, users, superadmins,
the role dashboard map, log browsers and gateway configuration.

Every mutation writes a UserAuditLog row.
"""
import logging
from datetime import timedelta

from django.contrib.auth.models import Group, User
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import serializers, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import SystemConfig, UserAuditLog
from accounts.password_policy import password_policy_error
from accounts.permissions import IsConsoleAdmin, IsSuperAdmin, is_super_actor
from accounts.rbac import ADMIN_GROUP, ROLE_DASHBOARD_KEY, SUPER_GROUP, catalogue_queryset, \
    normalize_role_dashboard_map, permission_key, reset_permissions, resolve_permissions
from accounts.serializers import UserSerializer, is_superadmin
from licensing.models import AccessLog, ApiLog, AuditLog, ExternalServiceToken, ServiceConfiguration
from licensing.utils import get_client_ip

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500
EXTERNAL_TOKEN_LIMIT = 200


def log_admin_action(request, action, target_type, target_id, meta=None):
    UserAuditLog.objects.create(
        actor=request.user,
        actor_username=request.user.username,
        action=action,
        target_type=target_type,
        target_id=str(target_id),
        meta=meta or {},
        ip_address=get_client_ip(request),
    )
    logger.info("%s by %s on %s %s", action, request.user.username, target_type, target_id)


def superadmin_users():
    return User.objects.filter(Q(is_superuser=True) | Q(groups__name=SUPER_GROUP)).distinct()


def group_payload(group):
    user_count = getattr(group, 'user_count', None)
    if user_count is None:
        user_count = group.user_set.count()
    return {
        'id': group.id,
        'name': group.name,
        'permissions': sorted(permission_key(permission) for permission in group.permissions.all()),
        'user_count': user_count,
    }


class PermissionListView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def get(self, request):
        return Response([{
            'id': permission.id,
            'name': permission.name,
            'codename': permission.codename,
            'app_label': permission.content_type.app_label,
            'model_name': permission.content_type.model,
            'permission_key': permission_key(permission),
        } for permission in catalogue_queryset()])


class PermissionResetView(APIView):
    permission_classes = [IsAuthenticated, IsSuperAdmin]

    def post(self, request):
        count = reset_permissions()
        log_admin_action(request, 'permissions.reset', 'permission', 'all', {'count': count})
        return Response({'message': 'Permissions reset successfully.', 'count': count})


class GroupListView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def get(self, request):
        groups = Group.objects.annotate(user_count=Count('user')).prefetch_related(
            'permissions__content_type').order_by('name')
        return Response([group_payload(group) for group in groups])

    def post(self, request):
        name = (request.data.get('name') or '').strip()
        if not name:
            return Response({'message': 'Group name is required.'}, status=status.HTTP_400_BAD_REQUEST)
        if Group.objects.filter(name=name).exists():
            return Response({'message': 'Group name already exists.'}, status=status.HTTP_400_BAD_REQUEST)

        group = Group.objects.create(name=name)
        group.permissions.set(resolve_permissions(request.data.get('permissions')))
        payload = group_payload(group)
        log_admin_action(request, 'group.create', 'group', group.id,
                         {'name': group.name, 'permissions': payload['permissions']})
        return Response(payload, status=status.HTTP_201_CREATED)


class GroupDetailView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def patch(self, request, group_id):
        group = Group.objects.filter(pk=group_id).first()
        if group is None:
            return Response({'message': 'Group not found.'}, status=status.HTTP_404_NOT_FOUND)

        name = request.data.get('name')
        if name is not None:
            name = name.strip()
            if not name:
                return Response({'message': 'Group name is required.'}, status=status.HTTP_400_BAD_REQUEST)
            if Group.objects.filter(name=name).exclude(pk=group.pk).exists():
                return Response({'message': 'Group name already exists.'}, status=status.HTTP_400_BAD_REQUEST)
            group.name = name
            group.save()

        if isinstance(request.data.get('permissions'), list):
            group.permissions.set(resolve_permissions(request.data['permissions']))

        payload = group_payload(group)
        log_admin_action(request, 'group.update', 'group', group.id,
                         {'name': group.name, 'permissions': payload['permissions']})
        return Response(payload)

    put = patch

    def delete(self, request, group_id):
        group = Group.objects.filter(pk=group_id).first()
        if group is None:
            return Response({'message': 'Group not found.'}, status=status.HTTP_404_NOT_FOUND)

        name = group.name
        group.delete()
        log_admin_action(request, 'group.delete', 'group', group_id, {'name': name})
        return Response({'message': 'Group deleted.'})


class UserListView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def get(self, request):
        users = User.objects.prefetch_related('groups', 'user_permissions__content_type').order_by('username')
        if not is_super_actor(request.user):
            users = users.exclude(pk__in=superadmin_users().values('pk'))
        return Response(UserSerializer(users, many=True).data)


class UserDetailView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def patch(self, request, user_id):
        user = User.objects.filter(pk=user_id).first()
        if user is None:
            return Response({'message': 'User not found.'}, status=status.HTTP_404_NOT_FOUND)

        actor_is_super = is_super_actor(request.user)
        if is_superadmin(user) and not actor_is_super:
            return Response({'message': 'Cannot modify SuperAdmin accounts.'}, status=status.HTTP_403_FORBIDDEN)

        groups = request.data.get('groups')
        if isinstance(groups, list) and SUPER_GROUP in groups and not actor_is_super:
            return Response({'message': 'Only SuperAdmin can grant the Super role.'},
                            status=status.HTTP_403_FORBIDDEN)

        with transaction.atomic():
            for field in ('first_name', 'last_name'):
                if field in request.data:
                    setattr(user, field, request.data.get(field) or '')
            if isinstance(request.data.get('is_active'), bool):
                user.is_active = request.data['is_active']
            user.save()

            if isinstance(groups, list):
                user.groups.set(Group.objects.filter(name__in=groups))
            direct_permissions = request.data.get('direct_permissions')
            if isinstance(direct_permissions, list):
                user.user_permissions.set(resolve_permissions(direct_permissions))

        data = UserSerializer(user).data
        log_admin_action(request, 'user.update', 'user', user.id, {
            'groups': data['groups'],
            'direct_permissions': data['direct_permissions'],
            'is_active': user.is_active,
        })
        return Response(data)

    def delete(self, request, user_id):
        if not is_super_actor(request.user):
            return Response({'message': 'Only SuperAdmin can delete users.'}, status=status.HTTP_403_FORBIDDEN)
        if str(request.user.pk) == str(user_id):
            return Response({'message': 'You cannot delete your own account.'}, status=status.HTTP_400_BAD_REQUEST)

        user = User.objects.filter(pk=user_id).first()
        if user is None:
            return Response({'message': 'User not found.'}, status=status.HTTP_404_NOT_FOUND)

        username = user.username
        user.delete()
        log_admin_action(request, 'user.delete', 'user', user_id, {'username': username})
        return Response({'message': 'User deleted.'})


class UserResetPasswordView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def post(self, request, user_id):
        new_password = request.data.get('new_password')
        if not new_password:
            return Response({'message': 'new_password is required.'}, status=status.HTTP_400_BAD_REQUEST)
        error = password_policy_error(new_password)
        if error:
            return Response({'message': error}, status=status.HTTP_400_BAD_REQUEST)

        user = User.objects.filter(pk=user_id).first()
        if user is None:
            return Response({'message': 'User not found.'}, status=status.HTTP_404_NOT_FOUND)
        if is_superadmin(user) and not is_super_actor(request.user):
            return Response({'message': 'Cannot modify SuperAdmin accounts.'}, status=status.HTTP_403_FORBIDDEN)

        user.set_password(new_password)
        user.save()
        log_admin_action(request, 'user.password.reset', 'user', user.id)
        return Response({'message': 'Password updated.'})


class SuperadminListView(APIView):
    permission_classes = [IsAuthenticated, IsSuperAdmin]

    def get(self, request):
        users = superadmin_users().prefetch_related('groups').order_by('username')
        return Response(UserSerializer(users, many=True).data)

    def post(self, request):
        username = request.data.get('username')
        password = request.data.get('password')
        if not username or not password:
            return Response({'message': 'username and password are required.'},
                            status=status.HTTP_400_BAD_REQUEST)
        error = password_policy_error(password)
        if error:
            return Response({'message': error}, status=status.HTTP_400_BAD_REQUEST)
        if User.objects.filter(username=username).exists():
            return Response({'message': 'Username already exists.'}, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            user = User.objects.create_user(
                username=username,
                password=password,
                first_name=request.data.get('first_name') or '',
                last_name=request.data.get('last_name') or '',
                is_superuser=True,
                is_staff=True,
            )
            for group_name in (SUPER_GROUP, ADMIN_GROUP):
                group, _ = Group.objects.get_or_create(name=group_name)
                user.groups.add(group)

        log_admin_action(request, 'superadmin.create', 'user', user.id, {'username': username})
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class SuperadminDetailView(APIView):
    permission_classes = [IsAuthenticated, IsSuperAdmin]

    def patch(self, request, user_id):
        user = superadmin_users().filter(pk=user_id).first()
        if user is None:
            return Response({'message': 'SuperAdmin not found.'}, status=status.HTTP_404_NOT_FOUND)

        password = request.data.get('password')
        if password:
            error = password_policy_error(password)
            if error:
                return Response({'message': error}, status=status.HTTP_400_BAD_REQUEST)
            user.set_password(password)

        for field in ('first_name', 'last_name'):
            if field in request.data:
                setattr(user, field, request.data.get(field) or '')
        if isinstance(request.data.get('is_active'), bool):
            user.is_active = request.data['is_active']
        user.save()

        log_admin_action(request, 'superadmin.update', 'user', user.id, {
            'is_active': user.is_active,
            'password_changed': bool(password),
        })
        return Response(UserSerializer(user).data)

    def delete(self, request, user_id):
        if superadmin_users().filter(is_active=True).count() <= 1:
            return Response({'message': 'Cannot delete the last SuperAdmin.'}, status=status.HTTP_400_BAD_REQUEST)

        user = superadmin_users().filter(pk=user_id).first()
        if user is None:
            return Response({'message': 'SuperAdmin not found.'}, status=status.HTTP_404_NOT_FOUND)

        with transaction.atomic():
            user.is_active = False
            user.is_superuser = False
            user.save()
            user.groups.remove(*Group.objects.filter(name=SUPER_GROUP))

        log_admin_action(request, 'superadmin.deactivate', 'user', user.id, {'username': user.username})
        return Response({'message': 'SuperAdmin deactivated.'})


class RoleDashboardConfigView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def get(self, request):
        return Response(SystemConfig.get_value(ROLE_DASHBOARD_KEY, {}))

    def put(self, request):
        raw = request.data.get('role_dashboard_map', request.data)
        cleaned = normalize_role_dashboard_map(dict(raw) if hasattr(raw, 'items') else raw)
        SystemConfig.set_value(ROLE_DASHBOARD_KEY, cleaned)
        log_admin_action(request, 'role_dashboard.update', 'system_config', ROLE_DASHBOARD_KEY, cleaned)
        return Response(cleaned)


def paging(params):
    def as_int(value, default):
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    limit = min(max(as_int(params.get('limit'), DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
    page = max(as_int(params.get('page'), 1), 1)
    return limit, page


def filter_date_range(queryset, field, params):
    for param, lookup in (('from', 'gte'), ('to', 'lte')):
        value = params.get(param)
        if not value:
            continue
        moment = parse_datetime(value)
        if moment is not None:
            queryset = queryset.filter(**{f'{field}__{lookup}': moment})
            continue
        day = parse_date(value)
        if day is not None:
            queryset = queryset.filter(**{f'{field}__date__{lookup}': day})
    return queryset


def paged_response(queryset, params, row):
    limit, page = paging(params)
    start = (page - 1) * limit
    return Response({
        'results': [row(item) for item in queryset[start:start + limit]],
        'count': queryset.count(),
        'page': page,
        'limit': limit,
    })


class ApiLogListView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def get(self, request):
        params = request.query_params
        logs = ApiLog.objects.order_by('-created_at')
        if params.get('service'):
            logs = logs.filter(service_name=params['service'])
        if params.get('endpoint'):
            logs = logs.filter(endpoint__icontains=params['endpoint'])
        if params.get('status', '').isdigit():
            logs = logs.filter(status_code=int(params['status']))
        logs = filter_date_range(logs, 'created_at', params)

        return paged_response(logs, params, lambda log: {
            'id': log.id,
            'service_name': log.service_name,
            'endpoint': log.endpoint,
            'request_data': log.request_data,
            'response_data': log.response_data,
            'status_code': log.status_code,
            'created_at': log.created_at,
        })


class AuditLogListView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def get(self, request):
        params = request.query_params
        logs = AuditLog.objects.select_related('user').order_by('-timestamp')
        if params.get('user'):
            logs = logs.filter(user__username__icontains=params['user'])
        if params.get('action'):
            logs = logs.filter(action=params['action'])
        if params.get('model'):
            logs = logs.filter(model_name=params['model'])
        logs = filter_date_range(logs, 'timestamp', params)

        return paged_response(logs, params, lambda log: {
            'id': log.id,
            'username': log.user.username if log.user else None,
            'action': log.action,
            'model_name': log.model_name,
            'object_id': log.object_id,
            'description': log.description,
            'ip_address': log.ip_address,
            'timestamp': log.timestamp,
        })


class AccessLogListView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def get(self, request):
        params = request.query_params
        logs = AccessLog.objects.select_related('user').order_by('-timestamp')
        if params.get('user'):
            logs = logs.filter(user__username__icontains=params['user'])
        if params.get('model'):
            logs = logs.filter(model_name=params['model'])
        if params.get('method'):
            logs = logs.filter(method=params['method'].upper())
        if params.get('endpoint'):
            logs = logs.filter(endpoint__icontains=params['endpoint'])
        logs = filter_date_range(logs, 'timestamp', params)

        return paged_response(logs, params, lambda log: {
            'id': log.id,
            'username': log.user.username if log.user else None,
            'model_name': log.model_name,
            'object_id': log.object_id,
            'method': log.method,
            'ip_address': log.ip_address,
            'endpoint': log.endpoint,
            'timestamp': log.timestamp,
        })


class ServiceConfigurationSerializer(serializers.ModelSerializer):
    class Meta:
        model = ServiceConfiguration
        fields = ['id', 'service_name', 'base_url', 'auth_endpoint', 'generate_psid_endpoint',
                  'transaction_status_endpoint', 'client_id', 'client_secret', 'updated_at']
        extra_kwargs = {
            'base_url': {'required': False, 'allow_blank': True},
            'auth_endpoint': {'required': False, 'allow_blank': True},
            'generate_psid_endpoint': {'required': False, 'allow_blank': True},
            'client_id': {'required': False, 'allow_blank': True},
            'client_secret': {'required': False, 'allow_blank': True, 'write_only': True},
        }


class ServiceConfigurationListView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def get(self, request):
        configs = ServiceConfiguration.objects.order_by('service_name')
        return Response(ServiceConfigurationSerializer(configs, many=True).data)

    def post(self, request):
        if not request.data.get('service_name'):
            return Response({'message': 'service_name is required.'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = ServiceConfigurationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        config = serializer.save()
        log_admin_action(request, 'service_config.create', 'service_config', config.id,
                         {'service_name': config.service_name})
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class ServiceConfigurationDetailView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def patch(self, request, config_id):
        config = ServiceConfiguration.objects.filter(pk=config_id).first()
        if config is None:
            return Response({'message': 'Service configuration not found.'}, status=status.HTTP_404_NOT_FOUND)
        serializer = ServiceConfigurationSerializer(config, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        log_admin_action(request, 'service_config.update', 'service_config', config.id,
                         {'service_name': config.service_name})
        return Response(serializer.data)

    put = patch


class ExternalTokenListView(APIView):
    permission_classes = [IsAuthenticated, IsConsoleAdmin]

    def get(self, request):
        tokens = ExternalServiceToken.objects.order_by('-created_at')
        if request.query_params.get('service'):
            tokens = tokens.filter(service_name=request.query_params['service'])

        items = []
        for token in tokens[:EXTERNAL_TOKEN_LIMIT]:
            expires_at = token.expires_at
            if token.created_at and expires_at and expires_at < token.created_at:
                expires_at = token.created_at + timedelta(hours=1)
            items.append({
                'id': token.id,
                'service_name': token.service_name,
                'access_token': token.access_token,
                'expires_at': expires_at,
                'created_at': token.created_at,
            })
        return Response(items)
