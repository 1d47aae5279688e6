from __future__ import annotations

from flask import Blueprint, request, g, abort

from api.extensions import get_services
from api.utils.responses import json_body, page_meta, parse_pagination, success_response
from models.health_record import HEALTH_STATUSES
from models.user import ROLE_ADMIN, ROLE_FIELD_OFFICER
from models.schemas.health_record import (
    HealthRecordCreateSchema,
    HealthRecordUpdateSchema,
    HealthRecordOutSchema,
)
from utils.decorators import jwt_required, roles_required

bp = Blueprint("health_records", __name__, url_prefix="/health-records")

record_create_schema = HealthRecordCreateSchema()
record_update_schema = HealthRecordUpdateSchema()
record_out_schema = HealthRecordOutSchema()
record_list_out_schema = HealthRecordOutSchema(many=True)


@bp.get("")
@jwt_required()
def list_records():
    """
    List health records (newest inspection first)
    ---
    tags:
      - Health Records
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 20 }
      - { in: query, name: status, type: string, enum: [healthy, diseased, pest_infestation, dead] }
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    status = request.args.get("status")
    if status and status not in HEALTH_STATUSES:
        abort(400, description=f"status must be one of {', '.join(HEALTH_STATUSES)}")
    rows, total = get_services().health.list_records(status=status, page=page, limit=limit)
    return success_response(
        record_list_out_schema.dump(rows), "Health records retrieved successfully",
        meta=page_meta(page, limit, total),
    )


@bp.get("/tree/<tree_id>")
@jwt_required()
def list_records_for_tree(tree_id: str):
    """
    Inspection history of one tree
    ---
    tags:
      - Health Records
    security:
      - Bearer: []
    parameters:
      - { in: path, name: tree_id, type: string, required: true }
    responses:
      200: { description: OK }
    """
    rows = get_services().health.list_for_tree(tree_id)
    return success_response(record_list_out_schema.dump(rows), "Health records retrieved successfully")


@bp.get("/<record_id>")
@jwt_required()
def get_record(record_id: str):
    """
    Get a health record by id
    ---
    tags:
      - Health Records
    security:
      - Bearer: []
    parameters:
      - { in: path, name: record_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    record = get_services().health.get(record_id)
    return success_response(record_out_schema.dump(record), "Health record retrieved successfully")


@bp.post("")
@roles_required([ROLE_ADMIN, ROLE_FIELD_OFFICER])
def create_record():
    """
    Record an inspection (admin, field_officer). Updates the tree's status and score.
    ---
    tags:
      - Health Records
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [treeId, inspectionDate, status, healthScore]
          properties:
            treeId: { type: string }
            inspectionDate: { type: string, format: date-time }
            status: { type: string, enum: [healthy, diseased, pest_infestation, dead] }
            healthScore: { type: integer, minimum: 0, maximum: 100 }
            followUpRequired: { type: boolean }
            followUpDate: { type: string, format: date-time }
    responses:
      201: { description: Created }
      404: { description: Tree not found }
      422: { description: Validation error }
    """
    data = record_create_schema.load(json_body())
    record = get_services().health.create(data, inspected_by=g.current_user["id"])
    return success_response(record_out_schema.dump(record), "Health record created successfully", 201)


@bp.put("/<record_id>")
@roles_required([ROLE_ADMIN, ROLE_FIELD_OFFICER])
def update_record(record_id: str):
    """
    Update a health record (admin, field_officer)
    ---
    tags:
      - Health Records
    security:
      - Bearer: []
    parameters:
      - { in: path, name: record_id, type: string, required: true }
      - in: body
        name: body
        schema: { type: object }
    responses:
      200: { description: Updated }
      404: { description: Not found }
    """
    data = record_update_schema.load(json_body())
    record = get_services().health.update(record_id, data)
    return success_response(record_out_schema.dump(record), "Health record updated successfully")


@bp.delete("/<record_id>")
@roles_required([ROLE_ADMIN])
def delete_record(record_id: str):
    """
    Delete a health record (admin)
    ---
    tags:
      - Health Records
    security:
      - Bearer: []
    parameters:
      - { in: path, name: record_id, type: string, required: true }
    responses:
      200: { description: Deleted }
    """
    get_services().health.delete(record_id)
    return success_response(None, "Health record deleted successfully")
