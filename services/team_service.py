"""
Team Service

Team CRUD, membership changes and leader assignment. Membership lives on
Profile.team_id; a team's leader must be one of its members. Multi-row changes
commit in one transaction.
"""

import logging
from typing import Optional, List, Any, Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from models import db, Team, Profile
from services.errors import ValidationError, NotFoundError, ConflictError, database_error
from services.permissions import Action, require

logger = logging.getLogger(__name__)

TEAM_NAME_MAX_LENGTH = 100
TEAM_DESCRIPTION_MAX_LENGTH = 500


def clean_team_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Team name is required")
    name = name.strip()
    if len(name) > TEAM_NAME_MAX_LENGTH:
        raise ValidationError(f"Team name must be at most {TEAM_NAME_MAX_LENGTH} characters")
    return name


def clean_team_description(description: Any) -> Optional[str]:
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValidationError("Team description must be text")
    description = description.strip()
    if len(description) > TEAM_DESCRIPTION_MAX_LENGTH:
        raise ValidationError(f"Team description must be at most {TEAM_DESCRIPTION_MAX_LENGTH} characters")
    return description or None


def parse_profile_ids(ids: Any, field_name: str) -> List[int]:
    if ids is None:
        return []
    if not isinstance(ids, list) or any(isinstance(i, bool) or not isinstance(i, int) for i in ids):
        raise ValidationError(f"{field_name} must be a list of integers")
    return list(dict.fromkeys(ids))


def get_team(team_id: int) -> Team:
    team = db.session.get(Team, team_id)
    if team is None:
        raise NotFoundError(f"Team {team_id} not found")
    return team


def list_teams() -> List[Team]:
    return list(db.session.execute(select(Team).order_by(Team.name.asc(), Team.id.asc())).scalars().all())


def list_unassigned_profiles() -> List[Profile]:
    stmt = select(Profile).where(Profile.team_id.is_(None))
    profiles = db.session.execute(stmt).scalars().all()
    return sorted(profiles, key=lambda p: p.sort_key)


def _load_profiles(profile_ids: Iterable[int]) -> List[Profile]:
    profile_ids = list(profile_ids)
    if not profile_ids:
        return []
    profiles = db.session.execute(select(Profile).where(Profile.id.in_(profile_ids))).scalars().all()
    missing = set(profile_ids) - {p.id for p in profiles}
    if missing:
        raise NotFoundError("Unknown profile ids", context={'profile_ids': sorted(missing)})
    return list(profiles)


def create_team(actor: Profile, name: Any, description: Any = None) -> Team:
    require(actor, Action.CREATE_TEAM)
    team = Team(name=clean_team_name(name), description=clean_team_description(description))
    try:
        db.session.add(team)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("create team", e)
    logger.info(f"Team {team.id} created by profile {actor.id}")
    return team


def update_team(
    actor: Profile,
    team_id: int,
    name: Any = None,
    description: Any = None,
    added_member_ids: Iterable[int] = (),
    removed_member_ids: Iterable[int] = (),
) -> Team:
    """
    Apply an edit session: rename, add unassigned profiles, remove members.
    A profile in both lists ends up a member (the add came after the remove).
    Removing the leader clears the team's leader reference.
    """
    require(actor, Action.EDIT_TEAM)
    team = get_team(team_id)

    added_ids = list(added_member_ids)
    removed_ids = set(removed_member_ids) - set(added_ids)

    if name is not None:
        team.name = clean_team_name(name)
    if description is not None:
        team.description = clean_team_description(description)

    for profile in _load_profiles(added_ids):
        if profile.team_id not in (None, team.id):
            raise ConflictError(
                f"{profile.email} already belongs to another team",
                context={'profile_id': profile.id, 'team_id': profile.team_id},
            )
        profile.team = team

    for profile in _load_profiles(removed_ids):
        if profile.team_id != team.id:
            continue
        profile.team = None
        if team.leader_id == profile.id:
            team.leader = None

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("update team", e)

    logger.info(
        f"Team {team.id} updated by profile {actor.id}: "
        f"+{len(added_ids)} / -{len(removed_ids)} members"
    )
    return team


def set_team_leader(actor: Profile, team_id: int, profile_id: Optional[int]) -> Team:
    require(actor, Action.EDIT_TEAM)
    team = get_team(team_id)

    if profile_id is None:
        team.leader = None
    else:
        profile = db.session.get(Profile, profile_id)
        if profile is None:
            raise NotFoundError(f"Profile {profile_id} not found")
        if profile.team_id != team.id:
            raise ValidationError("The team leader must be a member of the team")
        team.leader = profile

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("set team leader", e)
    return team


def delete_team(actor: Profile, team_id: int) -> None:
    """Members are released (team_id nulled) before the team row goes."""
    require(actor, Action.DELETE_TEAM)
    team = get_team(team_id)
    released = len(team.members)

    try:
        team.leader = None
        for member in list(team.members):
            member.team = None
        db.session.flush()
        db.session.delete(team)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise database_error("delete team", e)

    logger.info(f"Team {team_id} deleted by profile {actor.id} ({released} members released)")
