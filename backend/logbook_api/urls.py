"""
URL configuration for logbook_api project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/4.2/topics/http/urls/
"""

from django.urls import path, include
from django.http import JsonResponse


def api_root(request):
    """API root endpoint with available endpoints."""
    return JsonResponse({
        'message': 'Driver Logbook API',
        'version': '1.0',
        'endpoints': {
            'logbook': '/api/logbook/',
        },
        'documentation': {
            'logbook': {
                'description': 'Hours of Service duty status tracking for driver sessions',
                'endpoints': {
                    'log': 'GET /api/logbook/drivers/<driver_id>/ - Current log state',
                    'status': 'POST /api/logbook/drivers/<driver_id>/status/ - Change duty status',
                    'breaks': 'POST /api/logbook/drivers/<driver_id>/breaks/start/ - Start a break',
                    'driving_time': 'POST /api/logbook/drivers/<driver_id>/driving-time/ - Add driven hours',
                    'overrides': 'POST /api/logbook/drivers/<driver_id>/overrides/ - Document an override',
                    'totals': 'GET /api/logbook/drivers/<driver_id>/totals/?days=1 - Duty time totals',
                }
            },
        }
    })


urlpatterns = [
    # API root
    path("api/", api_root, name='api-root'),

    # Driver Logbook API
    path("api/logbook/", include("duty_logs.urls")),
]
