from marshmallow import Schema, fields, pre_load, validate

from models.schemas.common import normalize_email
from models.user import ROLES


class _EmailNormalizingSchema(Schema):
    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = normalize_email(data["email"])
        return data


class RegisterSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)
    password = fields.String(
        required=True, load_only=True,
        validate=validate.Length(min=8, error="Password must be at least 8 characters"),
    )
    username = fields.String(
        required=True,
        validate=[
            validate.Length(min=3, max=64, error="Username must be at least 3 characters"),
            validate.Regexp(r"^[^@\s]+$", error="Username may not contain '@' or whitespace"),
        ],
    )
    full_name = fields.String(
        required=True, data_key="fullName",
        validate=validate.Length(min=1, error="Full name is required"),
    )
    phone_number = fields.String(data_key="phoneNumber", allow_none=True)
    organization = fields.String(allow_none=True)


class UserCreateSchema(RegisterSchema):
    """Administrative creation: same as registration plus a role."""
    role = fields.String(required=True, validate=validate.OneOf(ROLES))


class LoginSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, validate=validate.Length(min=1, error="Password is required"))


class RefreshTokenSchema(Schema):
    refresh_token = fields.String(
        required=True, data_key="refreshToken",
        validate=validate.Length(min=1, error="Refresh token is required"),
    )
    # Exchange the refresh token for a new pair instead of only a new access token
    rotate = fields.Boolean(load_default=False)


class ForgotPasswordSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)


class ResetPasswordSchema(Schema):
    password = fields.String(required=True, validate=validate.Length(min=8))


class ChangePasswordSchema(Schema):
    current_password = fields.String(
        required=True, data_key="currentPassword",
        validate=validate.Length(min=1, error="Current password is required"),
    )
    new_password = fields.String(
        required=True, data_key="newPassword",
        validate=validate.Length(min=8, error="New password must be at least 8 characters"),
    )


class ProfileUpdateSchema(Schema):
    full_name = fields.String(data_key="fullName", validate=validate.Length(min=1))
    phone_number = fields.String(data_key="phoneNumber", allow_none=True)
    organization = fields.String(allow_none=True, validate=validate.Length(min=1))


class RoleUpdateSchema(Schema):
    role = fields.String(required=True, validate=validate.OneOf(ROLES))


class StatusUpdateSchema(Schema):
    is_active = fields.Boolean(required=True, data_key="isActive")


class UserOutSchema(Schema):
    """Public view of an identity. Hashes and one-time tokens are never dumped."""
    id = fields.String()
    email = fields.String()
    username = fields.String()
    full_name = fields.String(data_key="fullName")
    phone_number = fields.String(data_key="phoneNumber", allow_none=True)
    organization = fields.String(allow_none=True)
    role = fields.String()
    is_active = fields.Boolean(data_key="isActive")
    is_email_verified = fields.Boolean(data_key="isEmailVerified")
    last_login = fields.DateTime(data_key="lastLogin", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
