"""
Authentication and authorization utilities.

Resolves the current identity (user, profile, role, team) once per request and
provides decorators for protecting routes with role-based access control.
Route decorators only shape the HTTP response; services re-check every
mutation through services.permissions.
"""

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Optional, Dict

from flask import g, jsonify
from flask_login import login_required, current_user

from models import User, Profile, Role, Team
from services.errors import AuthenticationError
from services.permissions import visible_actions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Who is making the request, resolved from the session."""
    user: User
    profile: Profile

    @property
    def role(self) -> Role:
        return self.profile.role

    @property
    def team(self) -> Optional[Team]:
        return self.profile.team

    @property
    def is_team_leader(self) -> bool:
        return bool(self.profile.led_teams)

    @property
    def actions(self) -> Dict[str, bool]:
        return visible_actions(self.role, self.is_team_leader)

    def to_dict(self):
        data = self.profile.to_dict()
        data['is_team_leader'] = self.is_team_leader
        data['led_team_ids'] = [team.id for team in self.profile.led_teams]
        data['actions'] = self.actions
        return data


def current_identity() -> Optional[Identity]:
    """The request's identity, or None when anonymous or the profile is missing."""
    if 'identity' in g:
        return g.identity
    identity = None
    if current_user.is_authenticated and current_user.profile is not None:
        identity = Identity(user=current_user._get_current_object(), profile=current_user.profile)
    g.identity = identity
    return identity


def clear_identity():
    g.pop('identity', None)


def current_profile() -> Profile:
    identity = current_identity()
    if identity is None:
        raise AuthenticationError("Authentication required")
    return identity.profile


def role_required(*roles: Role):
    """
    Decorator to protect routes requiring one of `roles`.

    Ensures:
    1. User is authenticated (via login_required)
    2. User is active and has a profile
    3. Profile role is one of `roles`

    Returns 403 Forbidden otherwise.
    """
    allowed = {Role.parse(role) for role in roles}

    def decorator(f):
        @wraps(f)
        @login_required
        def decorated_function(*args, **kwargs):
            if not current_user.active:
                return jsonify({
                    'success': False,
                    'message': 'Account is inactive'
                }), 403

            identity = current_identity()
            if identity is None or identity.role not in allowed:
                logger.warning(
                    f"Access denied to {f.__name__} for user {current_user.id} "
                    f"(role: {identity.role.value if identity else None})"
                )
                return jsonify({
                    'success': False,
                    'message': 'Insufficient privileges'
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator


manager_required = role_required(Role.MANAGER)
