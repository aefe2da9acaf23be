"""
URL configuration for Driver Logbook API endpoints.

Provides URL routing for duty status changes, breaks, driving time,
trips, violation overrides and log queries, scoped by driver.
"""

from django.urls import path
from .views import DriverLogViewSet

urlpatterns = [
    path(
        "drivers/<str:driver_id>/",
        DriverLogViewSet.as_view({"get": "retrieve"}),
        name="driver-log",
    ),
    # Duty status endpoints
    path(
        "drivers/<str:driver_id>/status/",
        DriverLogViewSet.as_view({"post": "change_status"}),
        name="driver-log-status",
    ),
    path(
        "drivers/<str:driver_id>/driving-time/",
        DriverLogViewSet.as_view({"post": "add_driving_time"}),
        name="driver-log-driving-time",
    ),
    path(
        "drivers/<str:driver_id>/location/",
        DriverLogViewSet.as_view({"post": "update_location"}),
        name="driver-log-location",
    ),
    path(
        "drivers/<str:driver_id>/reset-daily/",
        DriverLogViewSet.as_view({"post": "reset_daily_hours"}),
        name="driver-log-reset-daily",
    ),
    path(
        "drivers/<str:driver_id>/reset-weekly/",
        DriverLogViewSet.as_view({"post": "reset_weekly_hours"}),
        name="driver-log-reset-weekly",
    ),
    # Break endpoints
    path(
        "drivers/<str:driver_id>/breaks/",
        DriverLogViewSet.as_view({"get": "breaks"}),
        name="driver-log-breaks",
    ),
    path(
        "drivers/<str:driver_id>/breaks/start/",
        DriverLogViewSet.as_view({"post": "start_break"}),
        name="driver-log-break-start",
    ),
    path(
        "drivers/<str:driver_id>/breaks/end/",
        DriverLogViewSet.as_view({"post": "end_break"}),
        name="driver-log-break-end",
    ),
    # Trip endpoints
    path(
        "drivers/<str:driver_id>/trips/start/",
        DriverLogViewSet.as_view({"post": "start_trip"}),
        name="driver-log-trip-start",
    ),
    path(
        "drivers/<str:driver_id>/trips/end/",
        DriverLogViewSet.as_view({"post": "end_trip"}),
        name="driver-log-trip-end",
    ),
    # Violation override endpoints
    path(
        "drivers/<str:driver_id>/overrides/",
        DriverLogViewSet.as_view({"get": "list_overrides", "post": "log_override"}),
        name="driver-log-overrides",
    ),
    # Log query endpoints
    path(
        "drivers/<str:driver_id>/status-changes/",
        DriverLogViewSet.as_view({"get": "status_changes"}),
        name="driver-log-status-changes",
    ),
    path(
        "drivers/<str:driver_id>/totals/",
        DriverLogViewSet.as_view({"get": "totals"}),
        name="driver-log-totals",
    ),
]

# API Documentation - Available Endpoints (prefix /api/logbook/):
"""
GET Endpoints:
- drivers/<driver_id>/ - Current log state with available hours and HOS compliance summary
- drivers/<driver_id>/status-changes/?days=7 - Status change log
- drivers/<driver_id>/breaks/?days=7 - Break log
- drivers/<driver_id>/overrides/?trip_id=<id> - Overrides documented in a trip
- drivers/<driver_id>/totals/?days=1 - Driving and on-duty totals

POST Endpoints:
(409 when the driver log was changed by a concurrent request)
- drivers/<driver_id>/status/ - Change duty status (409 when driving is blocked)
- drivers/<driver_id>/breaks/start/ - Start a 30-minute break
- drivers/<driver_id>/breaks/end/ - End the open break
- drivers/<driver_id>/driving-time/ - Add driven hours
- drivers/<driver_id>/trips/start/ - Open a trip
- drivers/<driver_id>/trips/end/ - Close the current trip
- drivers/<driver_id>/location/ - Update the current location
- drivers/<driver_id>/reset-daily/ - Start a new shift
- drivers/<driver_id>/reset-weekly/ - Clear the cycle counter after a 34-hour restart
- drivers/<driver_id>/overrides/ - Document a violation override
"""
