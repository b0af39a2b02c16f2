from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubevents.auth.identity import IdentityClaims
from clubevents.models import UserProfile, UserRole
from clubevents.models.base import utcnow
from clubevents.policy.access import Action, Resource, authorize
from clubevents.policy.principal import AuthenticatedUser, Principal
from clubevents.policy.validation import require_text, validate_email, validate_profile_fields
from clubevents.services.error_codes import ErrorCode
from clubevents.services.exceptions import ConflictError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


def _fallback_display_name(claims: IdentityClaims, email: str) -> str:
    if claims.display_name and claims.display_name.strip():
        return claims.display_name.strip()
    return email.split("@", 1)[0]


def sync_profile_on_sign_in(db: Session, claims: IdentityClaims) -> UserProfile:
    """Create the profile on first sign-in, otherwise refresh it from the identity provider."""
    authorize(
        AuthenticatedUser(user_id=claims.user_id, email=claims.email),
        Action.CREATE,
        Resource.profile(claims.user_id),
    )

    now = utcnow()
    profile = db.get(UserProfile, claims.user_id)
    created = profile is None

    if profile is None:
        email = validate_email(claims.email)
        profile = UserProfile(
            id=claims.user_id,
            email=email,
            display_name=require_text(_fallback_display_name(claims, email), "display_name"),
            photo_url=claims.photo_url,
            role=UserRole.USER,
            created_at=now,
            last_login=now,
        )
        db.add(profile)
    else:
        # Keep stored values where the provider has nothing newer
        profile.last_login = now
        if claims.email:
            profile.email = validate_email(claims.email)
        if claims.display_name and claims.display_name.strip():
            profile.display_name = claims.display_name.strip()
        if claims.photo_url:
            profile.photo_url = claims.photo_url

    try:
        db.commit()
    except IntegrityError as exc:
        # Two first sign-ins raced; the other one created the row
        db.rollback()
        profile = db.get(UserProfile, claims.user_id)
        if profile is None:
            raise ConflictError(ErrorCode.PROFILE_CONFLICT.value, "could not create profile") from exc
        created = False

    db.refresh(profile)
    logger.info("profile_signed_in", user_id=profile.id, created=created)
    return profile


def get_profile(db: Session, principal: Principal, user_id: str) -> UserProfile:
    authorize(principal, Action.READ, Resource.profile(user_id))
    profile = db.get(UserProfile, user_id)
    if not profile:
        raise NotFoundError(ErrorCode.PROFILE_NOT_FOUND.value, "profile not found")
    return profile


def update_profile(
    db: Session,
    principal: Principal,
    user_id: str,
    changes: dict[str, Any],
) -> UserProfile:
    if not changes:
        raise ValidationError(ErrorCode.NO_CHANGES.value, "no changes provided")

    authorize(principal, Action.UPDATE, Resource.profile(user_id, changes=changes.keys()))
    if "role" in changes and principal.user_id == user_id:
        raise ValidationError(ErrorCode.SELF_ROLE_CHANGE.value, "cannot change own role")

    profile = db.get(UserProfile, user_id)
    if not profile:
        raise NotFoundError(ErrorCode.PROFILE_NOT_FOUND.value, "profile not found")

    for field, value in validate_profile_fields(changes).items():
        setattr(profile, field, value)

    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info(
        "profile_updated",
        user_id=profile.id,
        fields=sorted(changes),
        actor_id=principal.user_id,
    )
    return profile


def list_profiles(
    db: Session,
    principal: Principal,
    query: str | None = None,
    limit: int = 50,
) -> list[UserProfile]:
    # Only admins can read profiles other than their own
    authorize(principal, Action.READ, Resource.profile(None))

    stmt = select(UserProfile).order_by(UserProfile.created_at.desc()).limit(limit)
    if query:
        like = f"%{query.strip().lower()}%"
        stmt = stmt.where(
            or_(
                UserProfile.email.ilike(like),
                UserProfile.display_name.ilike(like),
            )
        )
    return list(db.scalars(stmt).all())
