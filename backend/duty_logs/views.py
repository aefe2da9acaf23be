"""
Driver Logbook API Views.

Provides REST API endpoints for the driver logbook: duty status
changes, breaks, driving time, trips, violation overrides and log
queries. Each request restores the addressed driver's tracker from the
database, applies one operation and returns the resulting state.
"""

import logging
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .serializers import (
    BreakLogEntrySerializer,
    DriverLogSnapshotSerializer,
    DrivingTimeRequestSerializer,
    LocationRequestSerializer,
    QueryWindowSerializer,
    StatusChangeLogEntrySerializer,
    StatusChangeRequestSerializer,
    ViolationOverrideEntrySerializer,
    ViolationOverrideRequestSerializer,
)
from .services import (
    BreakAlreadyOpenError,
    DjangoLogStatePersistence,
    DutyStatusTracker,
    DutyStatusTrackingError,
    InvalidDutyInputError,
    NoOpenBreakError,
    PersistenceConflictError,
    PersistenceError,
    ViolationOverride,
)

logger = logging.getLogger(__name__)


class DriverLogViewSet(viewsets.ViewSet):
    """
    ViewSet for driver logbook operations.

    All routes are scoped by driver_id; one tracker per driver session.
    """

    permission_classes = [AllowAny]

    def get_tracker(self, driver_id):
        return DutyStatusTracker.restore(
            DjangoLogStatePersistence(driver_id), strict_persistence=True
        )

    def retrieve(self, request, driver_id=None):
        """Get the current log state with available hours and the HOS compliance summary."""
        try:
            tracker = self.get_tracker(driver_id)
            data = self._snapshot_data(tracker)
            data["available_hours"] = tracker.get_available_hours()
            data["compliance"] = tracker.get_compliance_summary()
            return Response(data)

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def change_status(self, request, driver_id=None):
        """Change duty status; driving requires inspection clearance."""
        serializer = StatusChangeRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            tracker = self.get_tracker(driver_id)
            validated_data = serializer.validated_data

            changed = tracker.change_status(
                validated_data["status"],
                can_start_driving=validated_data["can_start_driving"],
                reason=validated_data["reason"],
            )

            if not changed:
                logger.info(f"Driving blocked for driver {driver_id}")
                return Response(
                    {
                        "error": "Pre-trip inspection required before driving",
                        "changed": False,
                        "log": self._snapshot_data(tracker),
                    },
                    status=status.HTTP_409_CONFLICT,
                )

            return Response({"changed": True, "log": self._snapshot_data(tracker)})

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def start_break(self, request, driver_id=None):
        try:
            tracker = self.get_tracker(driver_id)
            entry = tracker.start_break()
            return Response(
                {
                    "break": BreakLogEntrySerializer(entry).data,
                    "log": self._snapshot_data(tracker),
                },
                status=status.HTTP_201_CREATED,
            )

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def end_break(self, request, driver_id=None):
        try:
            tracker = self.get_tracker(driver_id)
            entry = tracker.end_break()
            return Response(
                {
                    "break": BreakLogEntrySerializer(entry).data,
                    "log": self._snapshot_data(tracker),
                }
            )

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def add_driving_time(self, request, driver_id=None):
        serializer = DrivingTimeRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            tracker = self.get_tracker(driver_id)
            tracker.add_driving_time(serializer.validated_data["hours"])
            return Response(self._snapshot_data(tracker))

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def start_trip(self, request, driver_id=None):
        try:
            tracker = self.get_tracker(driver_id)
            trip_id = tracker.start_trip()
            logger.info(f"Started trip {trip_id} for driver {driver_id}")
            return Response(
                {"trip_id": trip_id, "log": self._snapshot_data(tracker)},
                status=status.HTTP_201_CREATED,
            )

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def end_trip(self, request, driver_id=None):
        try:
            tracker = self.get_tracker(driver_id)
            tracker.end_trip()
            return Response(self._snapshot_data(tracker))

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def update_location(self, request, driver_id=None):
        serializer = LocationRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            tracker = self.get_tracker(driver_id)
            tracker.update_location(serializer.validated_data["location"])
            return Response(self._snapshot_data(tracker))

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def reset_daily_hours(self, request, driver_id=None):
        try:
            tracker = self.get_tracker(driver_id)
            tracker.reset_daily_hours()
            logger.info(f"Reset daily driving hours for driver {driver_id}")
            return Response(self._snapshot_data(tracker))

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def reset_weekly_hours(self, request, driver_id=None):
        """Clear the cycle counter after a 34-hour restart."""
        try:
            tracker = self.get_tracker(driver_id)
            tracker.reset_weekly_hours()
            logger.info(f"Reset weekly driving hours for driver {driver_id}")
            return Response(self._snapshot_data(tracker))

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["get"])
    def list_overrides(self, request, driver_id=None):
        """Get overrides documented in a trip (default: the current trip)."""
        try:
            tracker = self.get_tracker(driver_id)
            trip_id = request.query_params.get("trip_id") or tracker.current_trip_id
            if not trip_id:
                return Response(
                    {"error": "trip_id parameter is required when no trip is open"},
                    status=status.HTTP_400_BAD_REQUEST,
                )

            overrides = tracker.get_trip_overrides(trip_id)
            return Response(
                {
                    "trip_id": trip_id,
                    "overrides": ViolationOverrideEntrySerializer(
                        overrides, many=True
                    ).data,
                    "weekly_override_count": tracker.get_weekly_override_count(),
                    "can_override": tracker.can_override(),
                }
            )

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["post"])
    def log_override(self, request, driver_id=None):
        serializer = ViolationOverrideRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            tracker = self.get_tracker(driver_id)
            validated_data = serializer.validated_data

            if not tracker.can_override():
                return Response(
                    {
                        "error": "Override not available",
                        "details": f"Maximum {tracker.max_weekly_overrides} overrides per week already used",
                    },
                    status=status.HTTP_409_CONFLICT,
                )

            entry = tracker.log_violation_override(
                ViolationOverride(
                    reason=validated_data["reason"],
                    driver_id=validated_data["driver_id"] or driver_id,
                    risk_acknowledged=validated_data["risk_acknowledged"],
                    estimated_fine_accepted=validated_data["estimated_fine_accepted"],
                ),
                validated_data["violation_type"],
                validated_data["risk_level"],
                estimated_fine=validated_data.get("estimated_fine"),
            )
            return Response(
                ViolationOverrideEntrySerializer(entry).data,
                status=status.HTTP_201_CREATED,
            )

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["get"])
    def status_changes(self, request, driver_id=None):
        days = self._query_days(request, DutyStatusTracker.LOG_QUERY_DAYS)
        if isinstance(days, Response):
            return days

        try:
            tracker = self.get_tracker(driver_id)
            entries = tracker.get_status_change_logs(days)
            return Response(
                {
                    "days": float(days),
                    "status_changes": StatusChangeLogEntrySerializer(
                        entries, many=True
                    ).data,
                }
            )

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["get"])
    def breaks(self, request, driver_id=None):
        days = self._query_days(request, DutyStatusTracker.LOG_QUERY_DAYS)
        if isinstance(days, Response):
            return days

        try:
            tracker = self.get_tracker(driver_id)
            entries = tracker.get_break_logs(days)
            return Response(
                {
                    "days": float(days),
                    "breaks": BreakLogEntrySerializer(entries, many=True).data,
                }
            )

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    @action(detail=True, methods=["get"])
    def totals(self, request, driver_id=None):
        """Driving and on-duty time over a window (default: 1 day)."""
        days = self._query_days(request, DutyStatusTracker.TOTALS_QUERY_DAYS)
        if isinstance(days, Response):
            return days

        try:
            tracker = self.get_tracker(driver_id)
            return Response(
                {
                    "days": float(days),
                    "total_driving_hours": float(tracker.get_total_driving_time(days)),
                    "total_on_duty_hours": float(tracker.get_total_on_duty_time(days)),
                    "weekly_override_count": tracker.get_weekly_override_count(),
                }
            )

        except (DutyStatusTrackingError, PersistenceError) as e:
            return self._error_response(e, driver_id)

    def _snapshot_data(self, tracker):
        return dict(DriverLogSnapshotSerializer(tracker.snapshot()).data)

    def _query_days(self, request, default):
        serializer = QueryWindowSerializer(data=request.query_params)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        return serializer.validated_data.get("days", default)

    def _error_response(self, error, driver_id):
        if isinstance(error, InvalidDutyInputError):
            response_status = status.HTTP_400_BAD_REQUEST
        elif isinstance(
            error, (NoOpenBreakError, BreakAlreadyOpenError, PersistenceConflictError)
        ):
            response_status = status.HTTP_409_CONFLICT
        elif isinstance(error, PersistenceError):
            response_status = status.HTTP_503_SERVICE_UNAVAILABLE
        else:
            response_status = status.HTTP_500_INTERNAL_SERVER_ERROR

        logger.error(f"Logbook operation failed for driver {driver_id}: {str(error)}")
        return Response(
            {"error": "Logbook operation failed", "details": str(error)},
            status=response_status,
        )
