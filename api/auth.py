"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/logout
- POST /auth/refresh-token
- POST /auth/forgot-password
- POST /auth/reset-password/<token>
- POST /auth/change-password
- GET  /auth/verify-email/<token>
- GET  /auth/me

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens (JWT, HS256) and opaque refresh tokens
- Stores refresh tokens in the DB so they can be revoked and rotated
- Locks an account for 30 minutes after 5 consecutive failed logins
"""
from __future__ import annotations

from flask import Blueprint, request, g

from api.extensions import get_services
from api.utils.responses import json_body, success_response
from models.schemas.user import (
    RegisterSchema,
    LoginSchema,
    RefreshTokenSchema,
    ForgotPasswordSchema,
    ResetPasswordSchema,
    ChangePasswordSchema,
    UserOutSchema,
)
from utils.decorators import jwt_required

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshTokenSchema()
forgot_schema = ForgotPasswordSchema()
reset_schema = ResetPasswordSchema()
change_password_schema = ChangePasswordSchema()
user_out_schema = UserOutSchema()


def _client():
    return request.remote_addr, request.headers.get("User-Agent")


def _session_payload(session) -> dict:
    return {
        "user": user_out_schema.dump(session.user),
        "accessToken": session.access_token,
        "refreshToken": session.refresh_token,
        "tokenType": "bearer",
        "expiresIn": session.expires_in,
    }


@bp.post("/register")
def register():
    """
    Register a new account
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password, username, fullName]
          properties:
            email: { type: string }
            password: { type: string, minLength: 8 }
            username: { type: string, minLength: 3 }
            fullName: { type: string }
    responses:
      201:
        description: Created (returns user and token pair)
      409:
        description: Email or username already taken
      422:
        description: Validation error
    """
    data = register_schema.load(json_body())
    ip, user_agent = _client()
    session = get_services().sessions.register(data, ip=ip, user_agent=user_agent)
    return success_response(_session_payload(session), "Registration successful", 201)


@bp.post("/login")
def login():
    """
    Login: return access and refresh tokens
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
      423:
        description: Account locked
    """
    data = login_schema.load(json_body())
    ip, user_agent = _client()
    session = get_services().sessions.login(data["email"], data["password"], ip=ip, user_agent=user_agent)
    return success_response(_session_payload(session), "Login successful")


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: revokes every refresh token of the caller
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    get_services().sessions.logout(g.current_user["id"], ip=request.remote_addr)
    return success_response(None, "Logout successful")


@bp.post("/refresh-token")
def refresh_token():
    """
    Mint a new access token from a refresh token.
    With rotate=true the refresh token is replaced as well.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
             rotate: { type: boolean, default: false }
    responses:
      200:
        description: New access token
      401:
        description: Invalid or expired refresh token
    """
    data = refresh_schema.load(json_body())
    sessions = get_services().sessions
    if data["rotate"]:
        ip, user_agent = _client()
        payload = _session_payload(sessions.rotate_refresh_token(data["refresh_token"], ip=ip, user_agent=user_agent))
    else:
        result = sessions.refresh_access_token(data["refresh_token"])
        payload = {
            "accessToken": result["access_token"],
            "tokenType": "bearer",
            "expiresIn": result["expires_in"],
        }
    return success_response(payload, "Token refreshed successfully")


@bp.post("/forgot-password")
def forgot_password():
    """
    Request a password reset email. Always answers 200.
    ---
    tags:
      - Auth
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      200:
        description: Accepted
    """
    data = forgot_schema.load(json_body())
    get_services().sessions.forgot_password(data["email"])
    return success_response(None, "If the email is registered, a password reset link has been sent")


@bp.post("/reset-password/<token>")
def reset_password(token: str):
    """
    Set a new password with a reset token
    ---
    tags:
      - Auth
    parameters:
      -  in: path
         name: token
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             password: { type: string, minLength: 8 }
    responses:
      200:
        description: Password reset
      400:
        description: Invalid or expired reset token
    """
    data = reset_schema.load(json_body())
    get_services().sessions.reset_password(token, data["password"])
    return success_response(None, "Password reset successful")


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the caller's password
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             currentPassword: { type: string }
             newPassword: { type: string, minLength: 8 }
    responses:
      200:
        description: Password changed
      401:
        description: Current password is incorrect
    """
    data = change_password_schema.load(json_body())
    get_services().sessions.change_password(g.current_user["id"], data["current_password"], data["new_password"])
    return success_response(None, "Password changed successfully")


@bp.get("/verify-email/<token>")
def verify_email(token: str):
    """
    Confirm an email address
    ---
    tags:
      - Auth
    parameters:
      -  in: path
         name: token
         type: string
         required: true
    responses:
      200:
        description: Email verified
      400:
        description: Invalid verification token
    """
    get_services().sessions.verify_email(token)
    return success_response(None, "Email verified successfully")


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = get_services().sessions.get_user(g.current_user["id"])
    return success_response(user_out_schema.dump(user), "User retrieved successfully")
