from flask import current_app
from marshmallow import Schema, fields, validate, ValidationError

# SQLite and PostgreSQL integer keys are signed 64-bit
MAX_ID = 2 ** 63 - 1

PASSWORD_MAX_LENGTH = 128

# ============================================
# Input Validation Schemas (marshmallow)
# ============================================

def validate_password_length(value):
    """Password length bounds, minimum taken from PASSWORD_MIN_LENGTH"""
    min_length = current_app.config['PASSWORD_MIN_LENGTH']
    if not min_length <= len(value) <= PASSWORD_MAX_LENGTH:
        raise ValidationError(f'Password must be {min_length}-{PASSWORD_MAX_LENGTH} characters')


class LoginSchema(Schema):
    """Login form"""
    username = fields.Str(required=True, validate=validate.Length(min=1))
    password = fields.Str(required=True, validate=validate.Length(min=1))


class RegisterSchema(Schema):
    """Self-registration form"""
    login = fields.Str(
        required=True,
        validate=validate.Length(min=2, max=50, error='Login must be 2-50 characters'),
        error_messages={'required': 'Login is required'}
    )
    password = fields.Str(
        required=True,
        validate=validate_password_length,
        error_messages={'required': 'Password is required'}
    )
    avatar = fields.Str(validate=validate.Length(max=500), allow_none=True)


class AssignmentSchema(Schema):
    """AJAX payload for assign/unassign"""
    taskId = fields.Int(
        required=True,
        validate=validate.Range(min=1, max=MAX_ID),
        error_messages={'required': 'taskId is required'}
    )
    userId = fields.Int(
        required=True,
        validate=validate.Range(min=1, max=MAX_ID),
        error_messages={'required': 'userId is required'}
    )


def validate_request_data(schema_class, data):
    """
    Shared input validation

    Returns:
        tuple: (is_valid, data_or_errors)
    """
    schema = schema_class()
    try:
        validated_data = schema.load(data)
        return True, validated_data
    except ValidationError as err:
        return False, err.messages
