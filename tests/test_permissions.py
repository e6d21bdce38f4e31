"""
Role-gated action selection and enforcement.
"""
import pytest

from models import Profile, Role, Team
from services.errors import PermissionDenied, AuthenticationError
from services.permissions import Action, visible_actions, allowed_actions, can, require, is_team_leader

MANAGER_ONLY = {
    'create_project', 'edit_project', 'delete_project', 'reorder_tasks',
    'create_team', 'edit_team', 'delete_team',
    'create_user', 'edit_user', 'delete_user', 'view_users',
}


def _profile(role, profile_id=1, led_teams=()):
    profile = Profile(id=profile_id, email=f'p{profile_id}@example.com', role=role)
    for team in led_teams:
        profile.led_teams.append(team)
    return profile


class TestVisibleActions:

    def test_manager_sees_everything(self):
        assert all(visible_actions(Role.MANAGER).values())

    @pytest.mark.parametrize('role', [Role.LEADER, Role.WORKER])
    def test_members_only_toggle_tasks(self, role):
        actions = visible_actions(role)
        assert actions['toggle_task'] is True
        assert not any(actions[name] for name in MANAGER_ONLY)
        assert actions['view_team_members'] is False

    def test_leadership_grants_team_member_view(self):
        actions = visible_actions(Role.WORKER, is_team_leader=True)
        assert actions['view_team_members'] is True
        assert actions['edit_team'] is False

    def test_anonymous_sees_nothing(self):
        assert not any(visible_actions(None).values())

    def test_map_covers_every_action(self):
        assert set(visible_actions(Role.WORKER)) == {action.value for action in Action}

    def test_role_strings_are_accepted(self):
        assert allowed_actions('manager') == allowed_actions(Role.MANAGER)


class TestEnforcement:

    def test_manager_passes(self):
        manager = _profile(Role.MANAGER)
        assert require(manager, Action.DELETE_PROJECT) is manager

    @pytest.mark.parametrize('action', [
        Action.CREATE_PROJECT, Action.EDIT_PROJECT, Action.DELETE_PROJECT, Action.REORDER_TASKS,
        Action.CREATE_TEAM, Action.DELETE_USER,
    ])
    def test_worker_is_denied_manager_actions(self, action):
        with pytest.raises(PermissionDenied) as exc_info:
            require(_profile(Role.WORKER), action)
        assert exc_info.value.status_code == 403
        assert exc_info.value.context == {'action': action.value}

    def test_missing_actor_is_unauthenticated(self):
        with pytest.raises(AuthenticationError):
            require(None, Action.TOGGLE_TASK)

    def test_leader_role_alone_does_not_grant_leadership(self):
        assert not can(_profile(Role.LEADER), Action.VIEW_TEAM_MEMBERS)

    def test_leadership_is_scoped_to_the_led_team(self):
        team = Team(id=7, name='Ops')
        leader = _profile(Role.LEADER, led_teams=[team])

        assert is_team_leader(leader, 7)
        assert not is_team_leader(leader, 8)
        assert can(leader, Action.VIEW_TEAM_MEMBERS, team_id=7)
        assert not can(leader, Action.VIEW_TEAM_MEMBERS, team_id=8)


class TestRole:

    def test_display_names(self):
        assert [role.display_name for role in Role] == ['Project Manager', 'Team Leader', 'Worker']

    def test_parse(self):
        assert Role.parse(' Leader ') is Role.LEADER
        with pytest.raises(ValueError):
            Role.parse('admin')
        with pytest.raises(ValueError):
            Role.parse(None)

    def test_sort_key_puts_managers_first_then_names(self):
        profiles = [
            Profile(id=3, email='c@example.com', role=Role.WORKER, first_name='Ann', last_name='Adams'),
            Profile(id=2, email='b@example.com', role=Role.LEADER, first_name='Zoe', last_name='Zimmer'),
            Profile(id=1, email='a@example.com', role=Role.MANAGER, first_name='Max', last_name='Young'),
            Profile(id=4, email='d@example.com', role=Role.WORKER, first_name='Aaron', last_name='adams'),
        ]
        ordered = sorted(profiles, key=lambda p: p.sort_key)
        assert [p.id for p in ordered] == [1, 2, 4, 3]
