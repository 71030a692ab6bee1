from django.urls import path

from .admin_views import PermissionListView, PermissionResetView, GroupListView, GroupDetailView, UserListView, \
    UserDetailView, UserResetPasswordView, SuperadminListView, SuperadminDetailView, RoleDashboardConfigView, \
    ApiLogListView, AuditLogListView, AccessLogListView, ServiceConfigurationListView, \
    ServiceConfigurationDetailView, ExternalTokenListView
from .views import RegisterView, LoginView, LogoutView, ProfileView, RoleDashboardView, ResetPasswordView, \
    FindUserView, ResetForgotPassword, ListInspectorsView, CreateInspectorUserView, generate_captcha, \
    OAuthAuthUrlView, OAuthCallbackView

urlpatterns = [
    path('register/', RegisterView.as_view(), name='register'),
    path('login/', LoginView.as_view(), name='login'),
    path('logout/', LogoutView.as_view(), name='logout'),
    path('profile/', ProfileView.as_view(), name='profile'),
    path('role-dashboard/', RoleDashboardView.as_view(), name='role-dashboard'),
    path('reset-password2/', ResetPasswordView.as_view(), name='reset-password'),
    path('find-user/', FindUserView.as_view(), name='find-user'),
    path('reset-forgot-password/', ResetForgotPassword.as_view(), name='reset-forgot-password'),
    path('list-inspectors/', ListInspectorsView.as_view(), name='list-inspectors'),
    path('create-update-inpsector-user/', CreateInspectorUserView.as_view(), name='create-update-inspector-user'),
    path('generate-captcha/', generate_captcha, name='generate-captcha'),

    path('oauth/google/auth-url/', OAuthAuthUrlView.as_view(provider='google'), name='oauth-google-auth-url'),
    path('oauth/github/auth-url/', OAuthAuthUrlView.as_view(provider='github'), name='oauth-github-auth-url'),
    path('oauth/<str:provider>/callback/', OAuthCallbackView.as_view(), name='oauth-callback'),

    path('admin/permissions/', PermissionListView.as_view(), name='admin-permissions'),
    path('admin/permissions/reset/', PermissionResetView.as_view(), name='admin-permissions-reset'),
    path('admin/groups/', GroupListView.as_view(), name='admin-groups'),
    path('admin/groups/<int:group_id>/', GroupDetailView.as_view(), name='admin-group-detail'),
    path('admin/users/', UserListView.as_view(), name='admin-users'),
    path('admin/users/<int:user_id>/', UserDetailView.as_view(), name='admin-user-detail'),
    path('admin/users/<int:user_id>/reset-password/', UserResetPasswordView.as_view(),
         name='admin-user-reset-password'),
    path('admin/superadmins/', SuperadminListView.as_view(), name='admin-superadmins'),
    path('admin/superadmins/<int:user_id>/', SuperadminDetailView.as_view(), name='admin-superadmin-detail'),
    path('admin/role-dashboard/', RoleDashboardConfigView.as_view(), name='admin-role-dashboard'),
    path('admin/api-logs/', ApiLogListView.as_view(), name='admin-api-logs'),
    path('admin/audit-logs/', AuditLogListView.as_view(), name='admin-audit-logs'),
    path('admin/access-logs/', AccessLogListView.as_view(), name='admin-access-logs'),
    path('admin/service-configs/', ServiceConfigurationListView.as_view(), name='admin-service-configs'),
    path('admin/service-configs/<int:config_id>/', ServiceConfigurationDetailView.as_view(),
         name='admin-service-config-detail'),
    path('admin/external-tokens/', ExternalTokenListView.as_view(), name='admin-external-tokens'),
]
