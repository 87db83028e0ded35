import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, get_jwt_identity, jwt_required

from ledger_service.services import user_service
from ledger_service.validation import (
    validate_profile_update,
    validate_signin,
    validate_signup,
)

user_bp = Blueprint('user', __name__)


def _issue_token(user):
    minutes = current_app.config['JWT_ACCESS_TOKEN_MINUTES']
    return create_access_token(
        identity=str(user.id), expires_delta=datetime.timedelta(minutes=minutes)
    )


@user_bp.route('/signup', methods=['POST'])
def signup():
    """
    Register a new user and open their account
    ---
    tags:
      - User
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - username
            - password
            - firstName
            - lastName
          properties:
            username:
              type: string
            password:
              type: string
            firstName:
              type: string
            lastName:
              type: string
    responses:
      201:
        description: User registered, access token issued
      400:
        description: Invalid input
      409:
        description: Username already exists
    """
    fields = validate_signup(request.get_json(silent=True))
    user = user_service.register_user(**fields)

    return jsonify({
        'message': 'Sign up successfully',
        'token': _issue_token(user),
        'user_id': str(user.id),
    }), 201


@user_bp.route('/signin', methods=['POST'])
def signin():
    """
    Authenticate user and return an access token
    ---
    tags:
      - User
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - username
            - password
          properties:
            username:
              type: string
            password:
              type: string
    responses:
      200:
        description: Login successful
      401:
        description: Invalid credentials
    """
    fields = validate_signin(request.get_json(silent=True))
    user = user_service.authenticate(fields['username'], fields['password'])
    return jsonify({'token': _issue_token(user)}), 200


@user_bp.route('/', methods=['PUT'])
@jwt_required()
def update_user():
    """
    Update the caller's name or password
    ---
    tags:
      - User
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            firstName:
              type: string
            lastName:
              type: string
            password:
              type: string
    responses:
      200:
        description: Updated successfully
      400:
        description: Invalid input
    """
    changes = validate_profile_update(request.get_json(silent=True))
    user_service.update_profile(get_jwt_identity(), **changes)
    return jsonify({'message': 'Updated successfully'}), 200


@user_bp.route('/bulk', methods=['GET'])
@jwt_required(optional=True)
def list_users():
    """
    Browse users by first or last name
    ---
    tags:
      - User
    parameters:
      - name: filter
        in: query
        type: string
        default: ''
    responses:
      200:
        description: Matching users, excluding the caller when authenticated
    """
    filter_text = request.args.get('filter', '', type=str)
    users = user_service.search_users(filter_text, exclude_user_id=get_jwt_identity())
    return jsonify({'user': [u.to_public_dict() for u in users]}), 200


@user_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    """
    Get the caller's profile
    ---
    tags:
      - User
    security:
      - Bearer: []
    responses:
      200:
        description: User profile
      404:
        description: User not found
    """
    user = user_service.get_user(get_jwt_identity())
    return jsonify(user.to_dict()), 200
