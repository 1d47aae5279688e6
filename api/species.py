from __future__ import annotations

from flask import Blueprint, request, abort

from api.extensions import get_services
from api.utils.responses import json_body, page_meta, parse_pagination, success_response
from models.user import ROLE_ADMIN
from models.schemas.species import SpeciesCreateSchema, SpeciesUpdateSchema, SpeciesOutSchema
from utils.decorators import jwt_required, roles_required

bp = Blueprint("species", __name__, url_prefix="/species")

species_create_schema = SpeciesCreateSchema()
species_update_schema = SpeciesUpdateSchema()
species_out_schema = SpeciesOutSchema()
species_list_out_schema = SpeciesOutSchema(many=True)


@bp.get("")
@jwt_required()
def list_species():
    """
    List species (sorted by common name)
    ---
    tags:
      - Species
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 50 }
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination(default_limit=50)
    rows, total = get_services().species.list_species(page=page, limit=limit)
    return success_response(
        species_list_out_schema.dump(rows), "Species retrieved successfully", meta=page_meta(page, limit, total)
    )


@bp.get("/search")
@jwt_required()
def search_species():
    """
    Search species by common, scientific or family name
    ---
    tags:
      - Species
    security:
      - Bearer: []
    parameters:
      - { in: query, name: q, type: string, required: true }
    responses:
      200: { description: OK }
      400: { description: Missing query }
    """
    q = (request.args.get("q") or "").strip()
    if not q:
        abort(400, description="Search query is required")
    rows = get_services().species.search(q)
    return success_response(species_list_out_schema.dump(rows), "Search results")


@bp.get("/<species_id>")
@jwt_required()
def get_species(species_id: str):
    """
    Get species by id
    ---
    tags:
      - Species
    security:
      - Bearer: []
    parameters:
      - { in: path, name: species_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    species = get_services().species.get(species_id)
    return success_response(species_out_schema.dump(species), "Species retrieved successfully")


@bp.post("")
@roles_required([ROLE_ADMIN])
def create_species():
    """
    Create species (admin)
    ---
    tags:
      - Species
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [commonName, scientificName]
          properties:
            commonName: { type: string }
            scientificName: { type: string }
            family: { type: string }
            conservationStatus: { type: string, enum: [LC, NT, VU, EN, CR, EW, EX] }
    responses:
      201: { description: Created }
      409: { description: Duplicate scientific name }
    """
    data = species_create_schema.load(json_body())
    species = get_services().species.create(data)
    return success_response(species_out_schema.dump(species), "Species created successfully", 201)


@bp.put("/<species_id>")
@roles_required([ROLE_ADMIN])
def update_species(species_id: str):
    """
    Update species (admin)
    ---
    tags:
      - Species
    security:
      - Bearer: []
    parameters:
      - { in: path, name: species_id, type: string, required: true }
      - in: body
        name: body
        schema: { type: object }
    responses:
      200: { description: Updated }
      404: { description: Not found }
      409: { description: Duplicate scientific name }
    """
    data = species_update_schema.load(json_body())
    species = get_services().species.update(species_id, data)
    return success_response(species_out_schema.dump(species), "Species updated successfully")


@bp.delete("/<species_id>")
@roles_required([ROLE_ADMIN])
def delete_species(species_id: str):
    """
    Delete species (admin). Refused while trees reference it.
    ---
    tags:
      - Species
    security:
      - Bearer: []
    parameters:
      - { in: path, name: species_id, type: string, required: true }
    responses:
      200: { description: Deleted }
      409: { description: Species in use }
    """
    get_services().species.delete(species_id)
    return success_response(None, "Species deleted successfully")
