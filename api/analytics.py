from __future__ import annotations

from flask import Blueprint, Response, request, abort

from api.extensions import get_services
from api.utils.responses import parse_datetime, success_response
from models.user import ROLE_ADMIN
from utils.decorators import jwt_required, roles_required

bp = Blueprint("analytics", __name__, url_prefix="/analytics")

EXPORT_FORMATS = ("csv", "json")


def _date_range():
    start, end = parse_datetime("startDate"), parse_datetime("endDate")
    if start and end and start > end:
        abort(400, description="startDate must be before endDate")
    return start, end


def _int_arg(name: str, minimum: int, maximum: int):
    val = request.args.get(name)
    if not val:
        return None
    try:
        number = int(val)
    except ValueError:
        abort(400, description=f"{name} must be an integer")
    if not minimum <= number <= maximum:
        abort(400, description=f"{name} must be between {minimum} and {maximum}")
    return number


@bp.get("/overview")
@jwt_required()
def overview():
    """
    Dashboard totals
    ---
    tags:
      - Analytics
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    return success_response(get_services().analytics.overview(), "Overview retrieved successfully")


@bp.get("/trees/growth")
@jwt_required()
def tree_growth():
    """
    Trees added per month
    ---
    tags:
      - Analytics
    security:
      - Bearer: []
    parameters:
      - { in: query, name: startDate, type: string, format: date-time }
      - { in: query, name: endDate, type: string, format: date-time }
    responses:
      200: { description: OK }
    """
    start, end = _date_range()
    return success_response(get_services().analytics.tree_growth(start, end), "Tree growth retrieved successfully")


@bp.get("/trees/distribution")
@jwt_required()
def tree_distribution():
    """
    Trees by status and by species (top 10)
    ---
    tags:
      - Analytics
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    return success_response(get_services().analytics.distribution(), "Distribution retrieved successfully")


@bp.get("/health/trends")
@jwt_required()
def health_trends():
    """
    Inspections per month and status
    ---
    tags:
      - Analytics
    security:
      - Bearer: []
    parameters:
      - { in: query, name: startDate, type: string, format: date-time }
      - { in: query, name: endDate, type: string, format: date-time }
    responses:
      200: { description: OK }
    """
    start, end = _date_range()
    return success_response(get_services().analytics.health_trends(start, end), "Health trends retrieved successfully")


@bp.get("/species/popular")
@jwt_required()
def popular_species():
    """
    Most planted species
    ---
    tags:
      - Analytics
    security:
      - Bearer: []
    parameters:
      - { in: query, name: limit, type: integer, default: 10 }
    responses:
      200: { description: OK }
    """
    limit = _int_arg("limit", 1, 100) or 10
    return success_response(get_services().analytics.popular_species(limit), "Popular species retrieved successfully")


@bp.get("/users/activity")
@roles_required([ROLE_ADMIN])
def user_activity():
    """
    Top contributors and inspectors (admin)
    ---
    tags:
      - Analytics
    security:
      - Bearer: []
    parameters:
      - { in: query, name: startDate, type: string, format: date-time }
      - { in: query, name: endDate, type: string, format: date-time }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
    """
    start, end = _date_range()
    return success_response(get_services().analytics.user_activity(start, end), "User activity retrieved successfully")


@bp.get("/reports/monthly")
@jwt_required()
def monthly_report():
    """
    Activity report for a month (or a whole year when month is omitted)
    ---
    tags:
      - Analytics
    security:
      - Bearer: []
    parameters:
      - { in: query, name: year, type: integer }
      - { in: query, name: month, type: integer, minimum: 1, maximum: 12 }
    responses:
      200: { description: OK }
    """
    report = get_services().analytics.monthly_report(_int_arg("year", 1900, 9999), _int_arg("month", 1, 12))
    return success_response(report, "Monthly report generated successfully")


@bp.get("/reports/export")
@roles_required([ROLE_ADMIN])
def export_report():
    """
    Download a report as CSV or JSON (admin)
    ---
    tags:
      - Analytics
    security:
      - Bearer: []
    parameters:
      - { in: query, name: format, type: string, enum: [csv, json], default: csv }
      - { in: query, name: startDate, type: string, format: date-time }
    produces:
      - text/csv
      - application/json
    responses:
      200: { description: Report file }
    """
    fmt = request.args.get("format", "csv").lower()
    if fmt not in EXPORT_FORMATS:
        abort(400, description="format must be csv or json")
    body = get_services().analytics.export_report(fmt, parse_datetime("startDate"))
    mimetype = "text/csv" if fmt == "csv" else "application/json"
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename=report.{fmt}"},
    )
