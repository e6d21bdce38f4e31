"""
Authentication Routes for Checkmate
Handles registration, login, logout, the current identity and password changes.
"""

import logging

from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from app import limiter
from models import db
from services.user_service import register_user, authenticate, change_password
from utils.auth import current_identity, current_profile, clear_identity
from utils.request_helpers import json_body

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _start_session(user, remember=False):
    login_user(user, remember=remember)
    clear_identity()
    try:
        user.update_last_login()
        db.session.commit()
    except SQLAlchemyError as e:
        # Login succeeds even if the timestamp can't be written
        db.session.rollback()
        logger.warning(f"Could not record last login for user {user.id}: {e}")


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("3 per minute")
def register():
    """Self-service sign-up. Rate limited: 3 attempts per minute."""
    data = json_body()
    user = register_user(
        data.get('email'),
        data.get('password'),
        data.get('confirm_password'),
        first_name=data.get('first_name'),
        last_name=data.get('last_name'),
    )
    _start_session(user)
    return jsonify({
        'success': True,
        'message': 'Account created',
        'user': current_identity().to_dict()
    }), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("5 per minute")
def login():
    """Rate limited: 5 attempts per minute."""
    data = json_body()
    user = authenticate(data.get('email'), data.get('password'))
    _start_session(user, remember=bool(data.get('remember')))
    logger.info(f"User {user.id} logged in")

    identity = current_identity()
    return jsonify({
        'success': True,
        'user': identity.to_dict() if identity else None
    })


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    user_id = current_user.id
    logout_user()
    clear_identity()
    logger.info(f"User {user_id} logged out")
    return jsonify({'success': True, 'message': 'You have been logged out'})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    """The caller's profile, team, leadership and action visibility map."""
    current_profile()
    return jsonify({'success': True, 'user': current_identity().to_dict()})


@auth_bp.route('/change-password', methods=['POST'])
@login_required
def change_password_route():
    data = json_body()
    change_password(
        current_user._get_current_object(),
        data.get('current_password'),
        data.get('new_password'),
        data.get('confirm_password'),
    )
    return jsonify({'success': True, 'message': 'Password updated successfully'})
