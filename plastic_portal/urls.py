"""
URL configuration for the plastic_portal project.

Accounts and the RBAC console live under ``api/accounts/``, the licensing
domain under ``api/pmc/`` and the OAuth2 provider under ``o/``.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/accounts/', include('accounts.urls')),
    path('api/pmc/', include('licensing.urls')),
    path('o/', include('oauth2_provider.urls', namespace='oauth2_provider')),
]
