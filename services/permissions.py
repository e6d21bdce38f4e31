"""
Role-gated action selection.

The same table answers two questions: which actions a client should render for
the current identity, and whether a service may perform a mutation on behalf of
an actor. Services call `require()` before touching storage.
"""

import logging
from enum import Enum
from typing import Dict, Optional, FrozenSet

from models import Profile, Role
from services.errors import PermissionDenied, AuthenticationError

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATE_PROJECT = "create_project"
    EDIT_PROJECT = "edit_project"
    DELETE_PROJECT = "delete_project"
    REORDER_TASKS = "reorder_tasks"
    TOGGLE_TASK = "toggle_task"
    CREATE_TEAM = "create_team"
    EDIT_TEAM = "edit_team"
    DELETE_TEAM = "delete_team"
    VIEW_TEAM_MEMBERS = "view_team_members"
    CREATE_USER = "create_user"
    EDIT_USER = "edit_user"
    DELETE_USER = "delete_user"
    VIEW_USERS = "view_users"


MEMBER_ACTIONS: FrozenSet[Action] = frozenset({Action.TOGGLE_TASK})

ROLE_ACTIONS: Dict[Role, FrozenSet[Action]] = {
    Role.MANAGER: frozenset(Action),
    Role.LEADER: MEMBER_ACTIONS,
    Role.WORKER: MEMBER_ACTIONS,
}

# Granted by leading a team, whatever the leader's role.
LEADERSHIP_ACTIONS: FrozenSet[Action] = frozenset({Action.VIEW_TEAM_MEMBERS})


def allowed_actions(role: Optional[Role], is_team_leader: bool = False) -> FrozenSet[Action]:
    if role is None:
        return frozenset()
    actions = ROLE_ACTIONS[Role.parse(role)]
    if is_team_leader:
        actions = actions | LEADERSHIP_ACTIONS
    return actions


def visible_actions(role: Optional[Role], is_team_leader: bool = False) -> Dict[str, bool]:
    """Visibility map for every gated action, keyed by action name."""
    allowed = allowed_actions(role, is_team_leader)
    return {action.value: action in allowed for action in Action}


def is_team_leader(profile: Optional[Profile], team_id: Optional[int] = None) -> bool:
    """Whether the profile leads `team_id` (or any team when team_id is None)."""
    if profile is None:
        return False
    if team_id is None:
        return bool(profile.led_teams)
    return any(team.id == team_id for team in profile.led_teams)


def can(actor: Optional[Profile], action: Action, team_id: Optional[int] = None) -> bool:
    if actor is None:
        return False
    return action in allowed_actions(actor.role, is_team_leader(actor, team_id))


def require(actor: Optional[Profile], action: Action, team_id: Optional[int] = None) -> Profile:
    """Raise unless `actor` may perform `action`. Returns the actor for chaining."""
    if actor is None:
        raise AuthenticationError("Authentication required")
    if not can(actor, action, team_id):
        logger.warning(
            f"[AUTHZ] Denied {action.value} for profile {actor.id} (role: {actor.role.value})"
        )
        raise PermissionDenied(
            f"Your role does not allow {action.value.replace('_', ' ')}",
            context={'action': action.value},
        )
    return actor
