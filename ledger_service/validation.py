"""
Request body validation for the user endpoints.

Rules follow the signup form: usernames are 3-20 characters of letters,
digits and underscores; passwords at least 6 characters; names 1-50.
"""

import re

from ledger_service.errors import ValidationError

USERNAME_REGEX = r'^[a-zA-Z0-9_]{3,20}$'
PASSWORD_MIN_LENGTH = 6
NAME_MAX_LENGTH = 50


def require_json_object(data):
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def validate_username(username):
    if not isinstance(username, str) or not re.match(USERNAME_REGEX, username.strip()):
        raise ValidationError(
            'Username must be 3-20 characters of letters, numbers and underscores'
        )
    return username.strip()


def validate_password(password):
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f'Password must be at least {PASSWORD_MIN_LENGTH} characters')
    return password


def validate_name(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} is required')
    value = value.strip()
    if len(value) > NAME_MAX_LENGTH:
        raise ValidationError(f'{field} is too long')
    return value


def validate_signup(data):
    data = require_json_object(data)
    return {
        'username': validate_username(data.get('username')),
        'password': validate_password(data.get('password')),
        'first_name': validate_name(data.get('firstName'), 'firstName'),
        'last_name': validate_name(data.get('lastName'), 'lastName'),
    }


def validate_signin(data):
    data = require_json_object(data)
    username = data.get('username')
    password = data.get('password')
    if not isinstance(username, str) or not username.strip():
        raise ValidationError('Username is required')
    if not isinstance(password, str) or not password:
        raise ValidationError('Password is required')
    return {'username': username.strip(), 'password': password}


def validate_profile_update(data):
    data = require_json_object(data)
    changes = {}
    if data.get('firstName') is not None:
        changes['first_name'] = validate_name(data['firstName'], 'firstName')
    if data.get('lastName') is not None:
        changes['last_name'] = validate_name(data['lastName'], 'lastName')
    if data.get('password') is not None:
        changes['password'] = validate_password(data['password'])
    if not changes:
        raise ValidationError('Nothing to update')
    return changes
