"""
User Service

Registration, credential checks, profile administration and user deletion.
A user is two rows: the auth identity (User) and the Profile sharing its id.
"""

import logging
import re
from typing import Optional, List, Any, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from models import db, User, Profile, Role, Team, Project
from services.errors import (
    ValidationError, AuthenticationError, PermissionDenied, NotFoundError, ConflictError,
    database_error,
)
from services.permissions import Action, require, can

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 64


def is_valid_email(email):
    """Validate email format."""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def is_valid_password(password) -> Tuple[bool, str]:
    """Validate password strength."""
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"
    if not re.search(r'[A-Za-z]', password):
        return False, "Password must contain at least one letter"
    if not re.search(r'[0-9]', password):
        return False, "Password must contain at least one number"
    return True, "Valid password"


def _clean_name(value: Any, label: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be text")
    value = value.strip()
    if len(value) > NAME_MAX_LENGTH:
        raise ValidationError(f"{label} must be at most {NAME_MAX_LENGTH} characters")
    return value


def _validate_credentials(email: Any, password: Any, confirm_password: Any) -> str:
    errors = []
    email = email.strip().lower() if isinstance(email, str) else ""
    if not email:
        errors.append("Email is required")
    elif not is_valid_email(email):
        errors.append("Please enter a valid email address")

    if not isinstance(password, str) or not password:
        errors.append("Password is required")
    else:
        valid, message = is_valid_password(password)
        if not valid:
            errors.append(message)

    if password != confirm_password:
        errors.append("Passwords do not match")

    if errors:
        raise ValidationError(errors[0], context={'errors': errors})
    return email


class FirstAccountTaken(Exception):
    """Another sign-up committed the first-account claim first."""


def _create_account(
    email: str, password: str, first_name: Any, last_name: Any, role: Role, first_account: bool = False
) -> User:
    if db.session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        raise ConflictError("An account with this email already exists")

    user = User(email=email, first_account=True if first_account else None)
    user.set_password(password)
    user.profile = Profile(
        email=email,
        first_name=_clean_name(first_name, "First name"),
        last_name=_clean_name(last_name, "Last name"),
        role=role,
    )
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if first_account:
            raise FirstAccountTaken() from e
        raise database_error("create account", e)
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("create account", e)
    return user


def _has_accounts() -> bool:
    return db.session.execute(select(func.count(User.id))).scalar_one() > 0


def register_user(email, password, confirm_password, first_name=None, last_name=None) -> User:
    """
    Self-service sign-up. New accounts are workers; the very first account is a
    manager. Concurrent first sign-ups race for the unique first-account claim and
    the losers are registered as workers.
    """
    email = _validate_credentials(email, password, confirm_password)
    role = Role.WORKER
    if not _has_accounts():
        try:
            user = _create_account(email, password, first_name, last_name, Role.MANAGER, first_account=True)
            role = Role.MANAGER
        except FirstAccountTaken:
            logger.info(f"First account already claimed; registering {email} as worker")
    if role is Role.WORKER:
        user = _create_account(email, password, first_name, last_name, Role.WORKER)
    logger.info(f"Registered user {user.id} ({email}) as {role.value}")
    return user


def create_user(actor: Profile, email, password, confirm_password, first_name=None, last_name=None) -> User:
    require(actor, Action.CREATE_USER)
    email = _validate_credentials(email, password, confirm_password)
    user = _create_account(email, password, first_name, last_name, Role.WORKER)
    logger.info(f"User {user.id} ({email}) created by profile {actor.id}")
    return user


def create_or_promote_manager(email, password, first_name=None, last_name=None) -> Tuple[User, bool]:
    """Bootstrap path for the CLI. Returns (user, created)."""
    email = _validate_credentials(email, password, password)
    user = db.session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None:
        return _create_account(email, password, first_name, last_name, Role.MANAGER), True

    if user.profile is None:
        user.profile = Profile(email=email, first_name="", last_name="")
    user.profile.role = Role.MANAGER
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("promote manager", e)
    return user, False


def authenticate(email: Any, password: Any) -> User:
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        raise ValidationError("Please enter both email and password")

    user = db.session.execute(
        select(User).where(User.email == email.strip().lower())
    ).scalar_one_or_none()

    if user is None or not user.check_password(password):
        logger.warning(f"Login failed for: {email}")
        raise AuthenticationError("Invalid email or password")
    if not user.active:
        logger.warning(f"Login denied - inactive account: {user.email}")
        raise PermissionDenied("Your account has been deactivated. Please contact support.")
    return user


def change_password(user: User, current_password, new_password, confirm_password) -> None:
    if not isinstance(current_password, str) or not user.check_password(current_password):
        raise ValidationError("Current password is incorrect")
    valid, message = is_valid_password(new_password if isinstance(new_password, str) else "")
    if not valid:
        raise ValidationError(message)
    if new_password != confirm_password:
        raise ValidationError("New passwords do not match")

    user.set_password(new_password)
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("change password", e)
    logger.info(f"Password changed for user {user.id}")


def list_profiles(actor: Profile) -> List[Profile]:
    """Every profile except the caller's, managers first."""
    require(actor, Action.VIEW_USERS)
    profiles = db.session.execute(select(Profile).where(Profile.id != actor.id)).scalars().all()
    return sorted(profiles, key=lambda p: p.sort_key)


def get_profile(actor: Profile, profile_id: int) -> Profile:
    if actor.id != profile_id and not can(actor, Action.VIEW_USERS):
        raise PermissionDenied("You can only view your own profile")
    profile = db.session.get(Profile, profile_id)
    if profile is None:
        raise NotFoundError(f"User {profile_id} not found")
    return profile


def update_profile(
    actor: Profile,
    profile_id: int,
    role: Any = None,
    first_name: Any = None,
    last_name: Any = None,
    team_id: Any = ...,
) -> Profile:
    """
    Manager edit of another profile. `team_id=None` removes the profile from its
    team; leaving a team also gives up its leadership.
    """
    require(actor, Action.EDIT_USER)
    profile = db.session.get(Profile, profile_id)
    if profile is None:
        raise NotFoundError(f"User {profile_id} not found")

    if role is not None:
        try:
            profile.role = Role.parse(role)
        except ValueError as e:
            raise ValidationError(str(e))
    if first_name is not None:
        profile.first_name = _clean_name(first_name, "First name")
    if last_name is not None:
        profile.last_name = _clean_name(last_name, "Last name")

    if team_id is not ...:
        if team_id is not None and (isinstance(team_id, bool) or not isinstance(team_id, int)):
            raise ValidationError("team_id must be an integer or null")
        new_team: Optional[Team] = None
        if team_id is not None:
            new_team = db.session.get(Team, team_id)
            if new_team is None:
                raise NotFoundError(f"Team {team_id} not found")
        if profile.team_id != team_id:
            for team in list(profile.led_teams):
                team.leader = None
            profile.team = new_team

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("update user", e)

    logger.info(f"Profile {profile_id} updated by profile {actor.id}")
    return profile


def delete_user(actor: Profile, user_id: Any) -> None:
    """
    Delete the profile row, then the auth identity, in one transaction.
    Teams led by the profile lose their leader; owned projects keep owner_email.
    """
    require(actor, Action.DELETE_USER)
    if user_id is None or user_id == "":
        raise ValidationError("User ID is required")
    if isinstance(user_id, bool):
        raise ValidationError("User ID must be an integer")
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError("User ID must be an integer")
    if user_id == actor.id:
        raise ValidationError("You cannot delete your own account")

    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    try:
        profile = user.profile
        if profile is not None:
            for team in list(profile.led_teams):
                team.leader = None
            db.session.execute(
                update(Project).where(Project.owner_id == profile.id).values(owner_id=None)
            )
            db.session.flush()
            db.session.delete(profile)
            db.session.flush()
            db.session.expire(user, ['profile'])
        db.session.delete(user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("delete user", e)

    logger.info(f"User {user_id} deleted by profile {actor.id}")
