import logging

from flask import Blueprint
from sqlalchemy.exc import SQLAlchemyError

from api.responses import respond_json
from models import storage

logger = logging.getLogger(__name__)

bp = Blueprint("health", __name__)


@bp.get("/healthz")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API and database are up
      503:
        description: Database unreachable
    """
    try:
        storage.ping()
    except SQLAlchemyError as exc:
        logger.error("health check: database unreachable", exc_info=exc)
        return respond_json({"status": "degraded", "database": "down"}, status=503)
    return respond_json({"status": "ok", "database": "up"})
