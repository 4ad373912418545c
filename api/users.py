from __future__ import annotations

from flask import Blueprint, jsonify

from models import storage
from models.user import User
from models.schemas.user import UserOutSchema
from services.exceptions import NotFoundError
from utils.decorators import jwt_required, current_user_id

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()


@bp.get("/users/me")
@jwt_required()
def me():
    """
    Get current user info
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User no longer exists
    """
    user = storage.get(User, current_user_id())
    if user is None:
        raise NotFoundError("User Not Exist")
    return jsonify(
        {
            "data": user_out_schema.dump(user)
        }
    ), 200
