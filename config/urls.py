"""
URL configuration for the cohort community platform.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import HttpResponse


def health_check(request):
    """Health check endpoint for the deployment platform."""
    return HttpResponse('OK', content_type='text/plain')


urlpatterns = [
    path('health/', health_check, name='health_check'),  # Health check first
    path('admin/', admin.site.urls),
    path('', include('cohort.urls')),
]
