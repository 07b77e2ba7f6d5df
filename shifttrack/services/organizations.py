"""
Organization settings service: geofence location and member listing.
"""
import math
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from ..models.models import Organization, User
from . import shift_store
from .audit import compute_diff, create_audit_log
from .errors import OrganizationMissing, ValidationError
from .permissions import Caller, require_caller, require_manager
from .time_rules import ensure_utc, utcnow


log = structlog.get_logger(__name__)


def validate_geofence(latitude: float, longitude: float, radius_km: float) -> None:
    values = (latitude, longitude, radius_km)
    if any(v is None or not math.isfinite(v) for v in values):
        raise ValidationError("Latitude, longitude and radius must be finite numbers.")
    if not -90 <= latitude <= 90:
        raise ValidationError("Latitude must be between -90 and 90 degrees.")
    if not -180 <= longitude <= 180:
        raise ValidationError("Longitude must be between -180 and 180 degrees.")
    if radius_km <= 0:
        raise ValidationError("Perimeter radius must be greater than 0 km.")


def _geofence_snapshot(org: Organization) -> dict:
    return {
        "latitude": org.latitude,
        "longitude": org.longitude,
        "perimeter_radius_km": org.perimeter_radius_km,
    }


def get_organization(db: Session, caller: Optional[Caller]) -> Organization:
    caller = require_caller(caller)
    org = shift_store.fetch_organization(db, caller.organization_id)
    if org is None:
        raise OrganizationMissing()
    return org


def update_organization_geofence(
    db: Session,
    caller: Optional[Caller],
    latitude: float,
    longitude: float,
    radius_km: float,
    now: Optional[datetime] = None,
) -> Organization:
    """
    Move the manager's organization geofence.

    Args:
        db: Database session
        caller: Manager performing the change
        latitude: New center latitude
        longitude: New center longitude
        radius_km: New perimeter radius, must be > 0

    Returns:
        Updated Organization
    """
    caller = require_manager(caller)
    validate_geofence(latitude, longitude, radius_km)
    now = ensure_utc(now or utcnow())

    org = shift_store.fetch_organization(db, caller.organization_id)
    if org is None:
        raise OrganizationMissing()

    before = _geofence_snapshot(org)
    shift_store.update_organization(
        db,
        org,
        latitude=latitude,
        longitude=longitude,
        perimeter_radius_km=radius_km,
        updated_at=now,
    )
    create_audit_log(
        db,
        entity_type="organization",
        entity_id=org.id,
        action="GEOFENCE_UPDATE",
        actor_id=caller.user_id,
        actor_role=caller.role,
        changes_json=compute_diff(before, _geofence_snapshot(org)),
        timestamp_utc=now,
    )
    db.commit()
    db.refresh(org)
    log.info(
        "geofence_updated",
        organization_id=str(org.id),
        latitude=latitude,
        longitude=longitude,
        radius_km=radius_km,
    )
    return org


def list_organization_users(db: Session, caller: Optional[Caller]) -> List[User]:
    caller = require_manager(caller)
    return shift_store.fetch_users_by_org(db, caller.organization_id)
