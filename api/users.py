from __future__ import annotations

from flask import Blueprint, request, g, abort

from api.extensions import get_services
from api.utils.responses import json_body, page_meta, parse_bool, parse_pagination, success_response
from models.user import ROLE_ADMIN, ROLES
from models.schemas.user import (
    UserCreateSchema,
    UserOutSchema,
    ProfileUpdateSchema,
    RoleUpdateSchema,
    StatusUpdateSchema,
)
from utils.decorators import jwt_required, roles_required

bp = Blueprint("users", __name__, url_prefix="/users")

user_create_schema = UserCreateSchema()
profile_update_schema = ProfileUpdateSchema()
role_update_schema = RoleUpdateSchema()
status_update_schema = StatusUpdateSchema()
user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)


@bp.get("")
@roles_required([ROLE_ADMIN])
def list_users():
    """
    List users (admin)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 20 }
      - { in: query, name: role, type: string, enum: [admin, field_officer, viewer] }
      - { in: query, name: isActive, type: boolean }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
    """
    page, limit = parse_pagination()
    role = request.args.get("role")
    if role and role not in ROLES:
        abort(400, description=f"role must be one of {', '.join(ROLES)}")
    rows, total = get_services().users.list_users(
        role=role, is_active=parse_bool("isActive"), page=page, limit=limit
    )
    return success_response(
        user_list_out_schema.dump(rows), "Users retrieved successfully", meta=page_meta(page, limit, total)
    )


@bp.get("/profile")
@jwt_required()
def get_profile():
    """
    Get own profile
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    user = get_services().users.get_user(g.current_user["id"])
    return success_response(user_out_schema.dump(user), "Profile retrieved successfully")


@bp.put("/profile")
@jwt_required()
def update_profile():
    """
    Update own profile (fullName, phoneNumber, organization)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            fullName: { type: string }
            phoneNumber: { type: string }
            organization: { type: string }
    responses:
      200: { description: Updated }
      422: { description: Validation error }
    """
    data = profile_update_schema.load(json_body())
    user = get_services().users.update_user(g.current_user["id"], data)
    return success_response(user_out_schema.dump(user), "Profile updated successfully")


@bp.get("/<user_id>")
@roles_required([ROLE_ADMIN])
def get_user(user_id: str):
    """
    Get a user by id (admin)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    user = get_services().users.get_user(user_id)
    return success_response(user_out_schema.dump(user), "User retrieved successfully")


@bp.post("")
@roles_required([ROLE_ADMIN])
def create_user():
    """
    Create a user with a role (admin)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password, username, fullName, role]
          properties:
            email: { type: string }
            password: { type: string }
            username: { type: string }
            fullName: { type: string }
            role: { type: string, enum: [admin, field_officer, viewer] }
    responses:
      201: { description: Created }
      409: { description: Email or username already taken }
    """
    data = user_create_schema.load(json_body())
    user = get_services().users.create_user(data)
    return success_response(user_out_schema.dump(user), "User created successfully", 201)


@bp.put("/<user_id>")
@roles_required([ROLE_ADMIN])
def update_user(user_id: str):
    """
    Update a user's profile fields (admin)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            fullName: { type: string }
            phoneNumber: { type: string }
            organization: { type: string }
    responses:
      200: { description: Updated }
      404: { description: Not found }
    """
    data = profile_update_schema.load(json_body())
    user = get_services().users.update_user(user_id, data)
    return success_response(user_out_schema.dump(user), "User updated successfully")


@bp.put("/<user_id>/role")
@roles_required([ROLE_ADMIN])
def update_user_role(user_id: str):
    """
    Change a user's role (admin)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            role: { type: string, enum: [admin, field_officer, viewer] }
    responses:
      200: { description: Updated }
    """
    data = role_update_schema.load(json_body())
    user = get_services().users.update_role(user_id, data["role"])
    return success_response(user_out_schema.dump(user), "User role updated successfully")


@bp.put("/<user_id>/status")
@roles_required([ROLE_ADMIN])
def update_user_status(user_id: str):
    """
    Activate or deactivate a user (admin)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            isActive: { type: boolean }
    responses:
      200: { description: Updated }
    """
    data = status_update_schema.load(json_body())
    user = get_services().users.update_status(user_id, data["is_active"])
    return success_response(user_out_schema.dump(user), "User status updated successfully")


@bp.delete("/<user_id>")
@roles_required([ROLE_ADMIN])
def delete_user(user_id: str):
    """
    Delete a user (admin). The account is soft-deleted and its sessions revoked.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
    responses:
      200: { description: Deleted }
      404: { description: Not found }
    """
    get_services().users.delete_user(user_id)
    return success_response(None, "User deleted successfully")
