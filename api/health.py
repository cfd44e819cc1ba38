from flask import Blueprint, current_app
from sqlalchemy import text

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
              example: ok
            version:
              type: string
              example: 1.0.0
      503:
        description: Database unreachable
    """
    from . import API_VERSION

    # Store failures are answered by the SQLAlchemyError handler (503)
    current_app.extensions["storage"].get_session().execute(text("SELECT 1"))
    return {"status": "ok", "version": API_VERSION}, 200
