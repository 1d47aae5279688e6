from flask import Blueprint

from api.utils.responses import success_response

API_VERSION = "1.0.0"

bp = Blueprint("health", __name__)

@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: healthy
            version:
              type: string
              example: 1.0.0
    """
    return success_response({"status": "healthy", "version": API_VERSION}, "TreeNetra API is running")
