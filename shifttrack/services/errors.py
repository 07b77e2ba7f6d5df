"""
Domain errors for shift tracking.
Every error is terminal for the request and carries a human-readable message;
the HTTP layer maps `status_code` and `code` onto the JSON response.
"""
from typing import Optional


class ShiftTrackError(Exception):
    status_code = 400
    code = "error"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class Unauthorized(ShiftTrackError):
    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized: You must be logged in."


class Forbidden(ShiftTrackError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class NotFound(ShiftTrackError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class AlreadyOpen(ShiftTrackError):
    status_code = 409
    code = "already_open"
    default_message = "You are already clocked in."


class AlreadyClosed(ShiftTrackError):
    status_code = 409
    code = "already_closed"
    default_message = "This shift has already been clocked out."


class LocationRequired(ShiftTrackError):
    status_code = 400
    code = "location_required"
    default_message = "Location permission is required to clock in."


class OutOfRange(ShiftTrackError):
    status_code = 400
    code = "out_of_range"

    def __init__(self, distance_km: float, radius_km: float):
        self.distance_km = distance_km
        self.radius_km = radius_km
        super().__init__(
            f"You are too far from the location. You are {distance_km:.2f}km away, "
            f"but need to be within {radius_km}km."
        )

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["distance_km"] = self.distance_km
        out["radius_km"] = self.radius_km
        return out


class OrganizationMissing(ShiftTrackError):
    status_code = 409
    code = "organization_missing"
    default_message = "Could not find your organization's settings."


class ValidationError(ShiftTrackError):
    status_code = 422
    code = "validation_error"
    default_message = "Invalid input"
