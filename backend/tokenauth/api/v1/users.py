"""Current-user endpoints."""

from __future__ import annotations

from flask import Blueprint

from tokenauth.api.deps import components, current_user_id, json_response, require_auth, timing
from tokenauth.schemas import UserProfileSchema

bp = Blueprint("users", __name__)

profile_schema = UserProfileSchema()


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated user's profile."""

    profile = components().auth.get_profile(current_user_id())
    return json_response({"data": profile_schema.dump(profile)})
