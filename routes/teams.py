"""
Teams API Routes
Team CRUD, membership edits and leader assignment.
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from services import team_service
from services.errors import ValidationError
from services.permissions import Action, can, require
from utils.auth import current_profile, manager_required
from utils.etag_helper import with_etag
from utils.request_helpers import json_body

teams_bp = Blueprint('teams', __name__, url_prefix='/api/teams')


@teams_bp.route('/', methods=['GET'])
@login_required
@with_etag
def list_teams():
    current_profile()
    teams = team_service.list_teams()
    return jsonify({'success': True, 'teams': [team.to_dict() for team in teams]})


@teams_bp.route('/unassigned', methods=['GET'])
@manager_required
def unassigned_profiles():
    """Profiles without a team, for the add-members picker."""
    profiles = team_service.list_unassigned_profiles()
    return jsonify({
        'success': True,
        'profiles': [profile.to_dict(include_team=False) for profile in profiles]
    })


@teams_bp.route('/<int:team_id>', methods=['GET'])
@login_required
@with_etag
def get_team(team_id):
    """Member lists are shown to managers, the team's leader and its own members."""
    actor = current_profile()
    team = team_service.get_team(team_id)
    show_members = can(actor, Action.VIEW_TEAM_MEMBERS, team_id) or actor.team_id == team.id
    return jsonify({'success': True, 'team': team.to_dict(include_members=show_members)})


@teams_bp.route('/', methods=['POST'])
@login_required
def create_team():
    actor = require(current_profile(), Action.CREATE_TEAM)
    data = json_body()
    team = team_service.create_team(actor, data.get('name'), data.get('description'))
    return jsonify({'success': True, 'team': team.to_dict(include_members=True)}), 201


@teams_bp.route('/<int:team_id>', methods=['PUT'])
@login_required
def update_team(team_id):
    actor = require(current_profile(), Action.EDIT_TEAM)
    data = json_body()
    team = team_service.update_team(
        actor,
        team_id,
        name=data.get('name'),
        description=data.get('description'),
        added_member_ids=team_service.parse_profile_ids(data.get('added_member_ids'), 'added_member_ids'),
        removed_member_ids=team_service.parse_profile_ids(data.get('removed_member_ids'), 'removed_member_ids'),
    )
    return jsonify({'success': True, 'team': team.to_dict(include_members=True)})


@teams_bp.route('/<int:team_id>/leader', methods=['PUT'])
@login_required
def set_leader(team_id):
    actor = require(current_profile(), Action.EDIT_TEAM)
    data = json_body()
    if 'profile_id' not in data:
        raise ValidationError("profile_id is required (null clears the leader)")
    profile_id = data['profile_id']
    if profile_id is not None and (isinstance(profile_id, bool) or not isinstance(profile_id, int)):
        raise ValidationError("profile_id must be an integer or null")
    team = team_service.set_team_leader(actor, team_id, profile_id)
    return jsonify({'success': True, 'team': team.to_dict(include_members=True)})


@teams_bp.route('/<int:team_id>', methods=['DELETE'])
@login_required
def delete_team(team_id):
    team_service.delete_team(current_profile(), team_id)
    return jsonify({'success': True, 'message': 'Team deleted'})
