"""
Durable store access for shifts, users and organizations.
All functions take the request's Session explicitly; callers own the commit.
"""
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from ..models.models import Organization, Shift, User


def parse_id(raw) -> Optional[uuid.UUID]:
    """Parse an incoming id; returns None when it is not a UUID."""
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        return None


def fetch_user(db: Session, user_id) -> Optional[User]:
    uid = parse_id(user_id)
    if uid is None:
        return None
    return db.query(User).filter(User.id == uid).first()


def fetch_user_by_subject(db: Session, subject: str) -> Optional[User]:
    return db.query(User).filter(User.auth_subject == subject).first()


def fetch_users_by_org(db: Session, organization_id) -> List[User]:
    return (
        db.query(User)
        .filter(User.organization_id == organization_id)
        .order_by(User.email.asc())
        .all()
    )


def fetch_active_users_by_org(db: Session, organization_id) -> List[User]:
    """Users of the organization with at least one open shift."""
    return (
        db.query(User)
        .filter(
            User.organization_id == organization_id,
            User.shifts.any(Shift.clock_out.is_(None)),
        )
        .order_by(User.email.asc())
        .all()
    )


def fetch_organization(db: Session, organization_id) -> Optional[Organization]:
    return db.query(Organization).filter(Organization.id == organization_id).first()


def fetch_first_organization(db: Session) -> Optional[Organization]:
    return db.query(Organization).order_by(Organization.created_at.asc()).first()


def update_organization(db: Session, org: Organization, **fields) -> Organization:
    for key, value in fields.items():
        setattr(org, key, value)
    db.flush()
    return org


def fetch_shift(db: Session, shift_id) -> Optional[Shift]:
    sid = parse_id(shift_id)
    if sid is None:
        return None
    return db.query(Shift).filter(Shift.id == sid).first()


def fetch_open_shift_by_user(db: Session, user_id) -> Optional[Shift]:
    return (
        db.query(Shift)
        .filter(Shift.user_id == user_id, Shift.clock_out.is_(None))
        .order_by(Shift.clock_in.desc())
        .first()
    )


def fetch_shifts_by_user(db: Session, user_id) -> List[Shift]:
    return (
        db.query(Shift)
        .filter(Shift.user_id == user_id)
        .order_by(Shift.clock_in.desc())
        .all()
    )


def fetch_shifts_by_org_in_range(
    db: Session,
    organization_id,
    start: datetime,
    end: datetime,
) -> List[Shift]:
    """
    Shifts of the organization's users whose clock-in falls in [start, end].

    Args:
        db: Database session
        organization_id: Organization ID
        start: Inclusive lower bound (UTC)
        end: Inclusive upper bound (UTC)

    Returns:
        Shifts with their user eagerly loaded, oldest first
    """
    return (
        db.query(Shift)
        .join(User, User.id == Shift.user_id)
        .options(joinedload(Shift.user))
        .filter(
            User.organization_id == organization_id,
            Shift.clock_in >= start,
            Shift.clock_in <= end,
        )
        .order_by(Shift.clock_in.asc())
        .all()
    )


def create_shift(
    db: Session,
    user_id,
    clock_in: datetime,
    note: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> Shift:
    """Insert a new open shift. Raises IntegrityError if one is already open."""
    shift = Shift(
        user_id=user_id,
        clock_in=clock_in,
        clock_in_note=note,
        clock_in_latitude=latitude,
        clock_in_longitude=longitude,
    )
    db.add(shift)
    db.flush()
    return shift


def close_shift_owned_by(
    db: Session,
    shift_id,
    user_id,
    clock_out: datetime,
    note: Optional[str] = None,
) -> int:
    """
    Set clock-out on a shift only if it belongs to user_id and is still open.

    Returns:
        Number of rows updated (0 means another request closed it first)
    """
    result = db.execute(
        update(Shift)
        .where(
            Shift.id == shift_id,
            Shift.user_id == user_id,
            Shift.clock_out.is_(None),
        )
        .values(clock_out=clock_out, clock_out_note=note)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
