from django.contrib.auth.models import Group, User
from rest_framework import serializers

from accounts.password_policy import password_policy_error
from accounts.rbac import SUPER_GROUP, permission_key


def is_superadmin(user):
    return user.is_superuser or user.groups.filter(name=SUPER_GROUP).exists()


class UserSerializer(serializers.ModelSerializer):
    groups = serializers.SerializerMethodField()
    permissions = serializers.SerializerMethodField()
    direct_permissions = serializers.SerializerMethodField()
    is_superadmin = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'email', 'groups', 'permissions',
                  'direct_permissions', 'is_active', 'is_superadmin']
        read_only_fields = ['id', 'username', 'email', 'is_active']

    def get_groups(self, obj):
        return list(obj.groups.values_list('name', flat=True))

    def get_permissions(self, obj):
        return sorted(obj.get_all_permissions())

    def get_direct_permissions(self, obj):
        return sorted(permission_key(permission)
                      for permission in obj.user_permissions.select_related('content_type'))

    def get_is_superadmin(self, obj):
        return is_superadmin(obj)


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'password', 'first_name', 'last_name', 'email']
        extra_kwargs = {
            'username': {'validators': []},
        }

    def validate_username(self, value):
        if User.objects.filter(username=value).exists():
            raise serializers.ValidationError("This username is already taken.")
        return value

    def validate_password(self, value):
        error = password_policy_error(value)
        if error:
            raise serializers.ValidationError(error)
        return value

    def create(self, validated_data):
        user = User.objects.create_user(**validated_data)
        applicant_group, _ = Group.objects.get_or_create(name='APPLICANT')
        user.groups.add(applicant_group)
        return user
