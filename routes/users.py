"""
Users API Routes
Manager administration of accounts and profiles.
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from services import user_service
from services.permissions import Action, require
from utils.auth import current_profile
from utils.request_helpers import json_body

users_bp = Blueprint('users', __name__, url_prefix='/api/users')

# Older clients post deletions to /api/deleteUser.
legacy_users_bp = Blueprint('legacy_users', __name__, url_prefix='/api')


@users_bp.route('/', methods=['GET'])
@login_required
def list_users():
    profiles = user_service.list_profiles(current_profile())
    return jsonify({
        'success': True,
        'users': [profile.to_dict() for profile in profiles],
        'total': len(profiles)
    })


@users_bp.route('/', methods=['POST'])
@login_required
def create_user():
    actor = require(current_profile(), Action.CREATE_USER)
    data = json_body()
    user = user_service.create_user(
        actor,
        data.get('email'),
        data.get('password'),
        data.get('confirm_password', data.get('password')),
        first_name=data.get('first_name'),
        last_name=data.get('last_name'),
    )
    return jsonify({'success': True, 'user': user.profile.to_dict()}), 201


@users_bp.route('/<int:user_id>', methods=['GET'])
@login_required
def get_user(user_id):
    profile = user_service.get_profile(current_profile(), user_id)
    return jsonify({'success': True, 'user': profile.to_dict()})


@users_bp.route('/<int:user_id>', methods=['PUT'])
@login_required
def update_user(user_id):
    """Only keys present in the body change; "team_id": null removes the user from their team."""
    actor = require(current_profile(), Action.EDIT_USER)
    data = json_body()
    profile = user_service.update_profile(
        actor,
        user_id,
        role=data.get('role'),
        first_name=data.get('first_name'),
        last_name=data.get('last_name'),
        team_id=data['team_id'] if 'team_id' in data else ...,
    )
    return jsonify({'success': True, 'user': profile.to_dict()})


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@login_required
def delete_user(user_id):
    user_service.delete_user(current_profile(), user_id)
    return jsonify({'success': True, 'message': 'User deleted'})


@legacy_users_bp.route('/deleteUser', methods=['DELETE', 'POST'])
@login_required
def delete_user_legacy():
    """Body: {"userId": <id>}."""
    actor = require(current_profile(), Action.DELETE_USER)
    data = json_body()
    user_service.delete_user(actor, data.get('userId'))
    return jsonify({'success': True, 'message': 'User deleted'})
