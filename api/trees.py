from __future__ import annotations

from flask import Blueprint, request, g, abort

from api.extensions import get_services
from api.utils.responses import json_body, page_meta, parse_float, parse_pagination, success_response
from models.tree import TREE_STATUSES
from models.user import ROLE_ADMIN, ROLE_FIELD_OFFICER
from models.schemas.tree import TreeCreateSchema, TreeUpdateSchema, TreeOutSchema, TagsSchema
from utils.decorators import jwt_required, roles_required

bp = Blueprint("trees", __name__, url_prefix="/trees")

EDITORS = [ROLE_ADMIN, ROLE_FIELD_OFFICER]
DEFAULT_RADIUS_M = 1000

tree_create_schema = TreeCreateSchema()
tree_update_schema = TreeUpdateSchema()
tags_schema = TagsSchema()
tree_out_schema = TreeOutSchema()
tree_list_out_schema = TreeOutSchema(many=True)


def _status_arg():
    status = request.args.get("status")
    if status and status not in TREE_STATUSES:
        abort(400, description=f"status must be one of {', '.join(TREE_STATUSES)}")
    return status


@bp.get("")
@jwt_required()
def list_trees():
    """
    List trees (newest first)
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 20 }
      - { in: query, name: status, type: string, enum: [healthy, diseased, dead, removed] }
      - { in: query, name: speciesId, type: string }
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    rows, total = get_services().trees.list_trees(
        status=_status_arg(), species_id=request.args.get("speciesId"), page=page, limit=limit
    )
    return success_response(
        tree_list_out_schema.dump(rows), "Trees retrieved successfully", meta=page_meta(page, limit, total)
    )


@bp.get("/search")
@jwt_required()
def search_trees():
    """
    Search trees by code, address or tag
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    parameters:
      - { in: query, name: q, type: string }
      - { in: query, name: status, type: string }
      - { in: query, name: minHeight, type: number }
      - { in: query, name: maxHeight, type: number }
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    rows, total = get_services().trees.search(
        q=request.args.get("q"),
        status=_status_arg(),
        min_height=parse_float("minHeight", minimum=0),
        max_height=parse_float("maxHeight", minimum=0),
        page=page,
        limit=limit,
    )
    return success_response(
        tree_list_out_schema.dump(rows), "Search results", meta=page_meta(page, limit, total)
    )


@bp.get("/nearby")
@jwt_required()
def nearby_trees():
    """
    Trees within a radius (metres) of a point, nearest first
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    parameters:
      - { in: query, name: latitude, type: number, required: true }
      - { in: query, name: longitude, type: number, required: true }
      - { in: query, name: radius, type: number, default: 1000 }
    responses:
      200: { description: OK }
      400: { description: Missing or invalid coordinates }
    """
    latitude = parse_float("latitude", minimum=-90, maximum=90)
    longitude = parse_float("longitude", minimum=-180, maximum=180)
    if latitude is None or longitude is None:
        abort(400, description="Latitude and longitude are required")
    radius = parse_float("radius", minimum=0)
    hits = get_services().trees.nearby(latitude, longitude, DEFAULT_RADIUS_M if radius is None else radius)
    data = []
    for tree, distance in hits:
        item = tree_out_schema.dump(tree)
        item["distance"] = round(distance, 1)
        data.append(item)
    return success_response(data, "Nearby trees retrieved successfully")


@bp.get("/statistics")
@jwt_required()
def tree_statistics():
    """
    Tree counts by health and species
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    return success_response(get_services().trees.statistics(), "Statistics retrieved successfully")


@bp.get("/<tree_id>")
@jwt_required()
def get_tree(tree_id: str):
    """
    Get a tree by id
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    parameters:
      - { in: path, name: tree_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    tree = get_services().trees.get(tree_id)
    return success_response(tree_out_schema.dump(tree), "Tree retrieved successfully")


@bp.post("")
@roles_required(EDITORS)
def create_tree():
    """
    Register a tree (admin, field_officer)
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [speciesId, location]
          properties:
            speciesId: { type: string }
            location:
              type: object
              properties:
                latitude: { type: number }
                longitude: { type: number }
                address: { type: string }
            plantedDate: { type: string, format: date }
            height: { type: number }
            tags: { type: array, items: { type: string } }
    responses:
      201: { description: Created }
      422: { description: Validation error }
    """
    data = tree_create_schema.load(json_body())
    tree = get_services().trees.create(data, created_by=g.current_user["id"])
    return success_response(tree_out_schema.dump(tree), "Tree created successfully", 201)


@bp.put("/<tree_id>")
@roles_required(EDITORS)
def update_tree(tree_id: str):
    """
    Update a tree (admin, field_officer)
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    parameters:
      - { in: path, name: tree_id, type: string, required: true }
      - in: body
        name: body
        schema: { type: object }
    responses:
      200: { description: Updated }
      404: { description: Not found }
    """
    data = tree_update_schema.load(json_body())
    tree = get_services().trees.update(tree_id, data)
    return success_response(tree_out_schema.dump(tree), "Tree updated successfully")


@bp.delete("/<tree_id>")
@roles_required([ROLE_ADMIN])
def delete_tree(tree_id: str):
    """
    Delete a tree and its health records (admin)
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    parameters:
      - { in: path, name: tree_id, type: string, required: true }
    responses:
      200: { description: Deleted }
      404: { description: Not found }
    """
    get_services().trees.delete(tree_id)
    return success_response(None, "Tree deleted successfully")


@bp.post("/<tree_id>/tags")
@roles_required(EDITORS)
def add_tags(tree_id: str):
    """
    Add tags to a tree
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    parameters:
      - { in: path, name: tree_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            tags: { type: array, items: { type: string } }
    responses:
      200: { description: Tags added }
    """
    data = tags_schema.load(json_body())
    tree = get_services().trees.add_tags(tree_id, data["tags"])
    return success_response(tree_out_schema.dump(tree), "Tags added successfully")


@bp.delete("/<tree_id>/tags/<tag>")
@roles_required(EDITORS)
def remove_tag(tree_id: str, tag: str):
    """
    Remove a tag from a tree
    ---
    tags:
      - Trees
    security:
      - Bearer: []
    parameters:
      - { in: path, name: tree_id, type: string, required: true }
      - { in: path, name: tag, type: string, required: true }
    responses:
      200: { description: Tag removed }
    """
    tree = get_services().trees.remove_tag(tree_id, tag)
    return success_response(tree_out_schema.dump(tree), "Tag removed successfully")
