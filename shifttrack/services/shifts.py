"""
Shift lifecycle service.
A worker is either CLOSED (no open shift) or OPEN (exactly one shift with no
clock-out). Clock-in opens a shift after the geofence check; clock-out closes
the caller's own shift, permanently.
"""
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.models import Shift, User
from . import shift_store
from .audit import create_audit_log
from .errors import (
    AlreadyClosed,
    AlreadyOpen,
    Forbidden,
    NotFound,
    OrganizationMissing,
    ShiftTrackError,
    Unauthorized,
    ValidationError,
)
from .geofence import validate_clock_in_location
from .permissions import Caller, ensure_same_organization, require_caller, require_manager
from .time_rules import ensure_utc, utcnow


log = structlog.get_logger(__name__)


def get_me(db: Session, caller: Optional[Caller]) -> User:
    caller = require_caller(caller)
    user = shift_store.fetch_user(db, caller.user_id)
    if user is None:
        raise Unauthorized()
    return user


def clock_in(
    db: Session,
    caller: Optional[Caller],
    note: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Shift:
    """
    Open a new shift for the caller.

    Args:
        db: Database session
        caller: Resolved identity of the worker clocking in
        note: Optional clock-in note
        latitude: Reported latitude (required)
        longitude: Reported longitude (required)
        now: Current instant (defaults to the system clock)

    Returns:
        The new open Shift

    Raises:
        Unauthorized, AlreadyOpen, OrganizationMissing, LocationRequired, OutOfRange
    """
    caller = require_caller(caller)
    now = ensure_utc(now or utcnow())

    if shift_store.fetch_open_shift_by_user(db, caller.user_id) is not None:
        raise AlreadyOpen()

    org = shift_store.fetch_organization(db, caller.organization_id)
    if org is None:
        raise OrganizationMissing()

    try:
        distance_km = validate_clock_in_location(
            latitude, longitude, org.latitude, org.longitude, org.perimeter_radius_km
        )
    except ShiftTrackError as e:
        log.info("clock_in_rejected", user_id=str(caller.user_id), reason=e.code)
        raise

    try:
        shift = shift_store.create_shift(
            db,
            user_id=caller.user_id,
            clock_in=now,
            note=note,
            latitude=latitude,
            longitude=longitude,
        )
        create_audit_log(
            db,
            entity_type="shift",
            entity_id=shift.id,
            action="CLOCK_IN",
            actor_id=caller.user_id,
            actor_role=caller.role,
            context={
                "gps_lat": latitude,
                "gps_lng": longitude,
                "distance_km": round(distance_km, 3),
                "note": note,
            },
            timestamp_utc=now,
        )
        db.commit()
    except IntegrityError:
        # Another request opened a shift for this worker between check and insert
        db.rollback()
        raise AlreadyOpen()

    db.refresh(shift)
    log.info(
        "shift_clock_in",
        shift_id=str(shift.id),
        user_id=str(caller.user_id),
        distance_km=round(distance_km, 3),
    )
    return shift


def clock_out(
    db: Session,
    caller: Optional[Caller],
    shift_id,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Shift:
    """
    Close one of the caller's own open shifts.
    A second clock-out on the same shift is an error, not a no-op.
    """
    caller = require_caller(caller)
    now = ensure_utc(now or utcnow())

    shift = shift_store.fetch_shift(db, shift_id)
    if shift is None:
        raise NotFound("Shift not found.")
    # A closed shift answers AlreadyClosed for every caller
    if shift.clock_out is not None:
        raise AlreadyClosed()
    if shift.user_id != caller.user_id:
        raise Forbidden("You can only clock out of your own shifts.")
    if now < ensure_utc(shift.clock_in):
        raise ValidationError("Clock-out cannot be earlier than clock-in.")

    updated = shift_store.close_shift_owned_by(
        db, shift.id, caller.user_id, clock_out=now, note=note
    )
    if updated == 0:
        db.rollback()
        raise AlreadyClosed()

    create_audit_log(
        db,
        entity_type="shift",
        entity_id=shift.id,
        action="CLOCK_OUT",
        actor_id=caller.user_id,
        actor_role=caller.role,
        changes_json={"clock_out": {"before": None, "after": now.isoformat()}},
        context={"note": note},
        timestamp_utc=now,
    )
    db.commit()
    db.refresh(shift)
    log.info("shift_clock_out", shift_id=str(shift.id), user_id=str(caller.user_id))
    return shift


def get_current_shift(db: Session, caller: Optional[Caller]) -> Optional[Shift]:
    caller = require_caller(caller)
    return shift_store.fetch_open_shift_by_user(db, caller.user_id)


def list_my_shifts(db: Session, caller: Optional[Caller]) -> List[Shift]:
    caller = require_caller(caller)
    return shift_store.fetch_shifts_by_user(db, caller.user_id)


def list_user_shifts(db: Session, caller: Optional[Caller], user_id) -> List[Shift]:
    """Shift history of another worker; managers only, same organization only."""
    caller = require_manager(caller)
    target = ensure_same_organization(caller, shift_store.fetch_user(db, user_id))
    return shift_store.fetch_shifts_by_user(db, target.id)
