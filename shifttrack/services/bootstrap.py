"""
First-login bootstrap.
The very first user creates a default organization and becomes its manager;
later users join that organization as care workers. This is an upsert with a
race window: two simultaneous first logins may both try to create records, so
a unique-constraint failure is resolved by re-reading the user.
"""
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..models.models import Organization, User, ROLE_CARE_WORKER, ROLE_MANAGER
from . import shift_store
from .audit import create_audit_log
from .errors import Unauthorized


log = structlog.get_logger(__name__)


def ensure_user(
    db: Session,
    subject: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
) -> User:
    """
    Return the user for an identity-provider subject, creating it if needed.

    Args:
        db: Database session
        subject: Identity provider subject (token `sub`)
        email: Email claim, defaults to "{subject}@example.com"
        name: Display name claim, used to name a new default organization

    Returns:
        Existing or newly created User

    Raises:
        Unauthorized: the email already belongs to another subject
    """
    user = shift_store.fetch_user_by_subject(db, subject)
    if user is not None:
        return user

    org = shift_store.fetch_first_organization(db)
    role = ROLE_CARE_WORKER
    if org is None:
        org = Organization(
            name=f"{name or 'My'} Organization",
            latitude=0.0,
            longitude=0.0,
            perimeter_radius_km=settings.default_perimeter_radius_km,
        )
        db.add(org)
        role = ROLE_MANAGER

    user_email = email or f"{subject}@example.com"
    user = User(
        auth_subject=subject,
        email=user_email,
        role=role,
        organization=org,
    )
    db.add(user)
    try:
        db.flush()
        create_audit_log(
            db,
            entity_type="user",
            entity_id=user.id,
            action="BOOTSTRAP",
            actor_id=user.id,
            actor_role="system",
            context={"organization_id": str(org.id), "role": role},
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = shift_store.fetch_user_by_subject(db, subject)
        if existing is not None:
            return existing
        # Another subject already holds this email
        log.warning("user_bootstrap_conflict", subject=subject, email=user_email)
        raise Unauthorized("An account with this email already exists.")

    db.refresh(user)
    log.info(
        "user_bootstrapped",
        user_id=str(user.id),
        organization_id=str(org.id),
        role=role,
    )
    return user
