"""Profile routes for the authenticated user."""

from flask import Blueprint, request, jsonify

from neighborly import db
from neighborly.errors import InvalidInput
from neighborly.models import User
from neighborly.utils import token_required

users_bp = Blueprint('users', __name__)

PROFILE_FIELDS = ('email', 'name', 'phone', 'default_zip_code')


@users_bp.route('/me', methods=['GET'])
@token_required
def get_me(current_user_id):
    user = User.get_or_create(current_user_id)
    db.session.commit()
    return jsonify({'user': user.to_dict()}), 200


@users_bp.route('/me', methods=['PUT'])
@token_required
def update_me(current_user_id):
    """Save profile fields sent by the client after login."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput('Request body must be a JSON object')

    user = User.get_or_create(current_user_id)
    for field in PROFILE_FIELDS:
        if field in data:
            value = data[field]
            if value is not None and not isinstance(value, str):
                raise InvalidInput(f'{field} must be text')
            setattr(user, field, value.strip() if value else None)

    db.session.commit()
    return jsonify({'user': user.to_dict()}), 200
