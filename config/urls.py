"""
URL configuration for the Razpored project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.0/topics/http/urls/
"""

from django.conf import settings
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    # Django admin
    path("admin/", admin.site.urls),
    # Authentication
    path("", include("django.contrib.auth.urls")),
    # Roster grid and CRUD screens
    path("", include("apps.razpored.urls", namespace="razpored")),
    # REST API
    path("api/", include("apps.api.urls", namespace="api")),
]

if settings.DEBUG:
    # Serve media files in development
    from django.conf.urls.static import static

    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
