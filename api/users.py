"""
Role-scoped route groups. Each group's views sit behind jwt_required and
roles_required; business endpoints for riders/drivers/admins plug in here.
"""
from __future__ import annotations

from flask import Blueprint

from api.responses import respond_json
from models.schemas.user import IdentityOutSchema
from models.user import UserRole
from utils.decorators import current_identity, jwt_required, roles_required

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")
driver_bp = Blueprint("driver", __name__, url_prefix="/driver")

identity_out_schema = IdentityOutSchema()


@admin_bp.get("/whoami")
@jwt_required()
@roles_required(UserRole.ADMIN)
def admin_whoami():
    """
    Admin-only: echo the caller's identity
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      403: { description: Forbidden }
    """
    return respond_json(identity_out_schema.dump(current_identity()))


@driver_bp.get("/whoami")
@jwt_required()
@roles_required(UserRole.DRIVER)
def driver_whoami():
    """
    Driver-only: echo the caller's identity
    ---
    tags:
      - Driver
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      403: { description: Forbidden }
    """
    return respond_json(identity_out_schema.dump(current_identity()))
