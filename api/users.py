from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, g, abort, current_app

from models import storage
from models.schemas.user import (
    ChannelProfileSchema,
    UpdateAccountSchema,
    UserOutSchema,
    WatchedVideoSchema,
)
from utils.decorators import jwt_required
from utils.errors import AccountError, ErrorKind
from utils.uploader import discard_uploads, stash_upload

MAX_LIMIT = 100

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()
update_account_schema = UpdateAccountSchema()
channel_profile_schema = ChannelProfileSchema()
watched_videos_schema = WatchedVideoSchema(many=True)


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def _update_media(field: str, form_key: str):
    path = stash_upload(request.files.get(form_key), current_app.config["UPLOAD_TMP_DIR"])
    try:
        user = current_app.extensions["session_manager"].update_media(g.current_user.id, field, path)
    finally:
        discard_uploads(path)
    return user


@bp.get("/current-user")
@jwt_required()
def current_user():
    """
    Get current user info.
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
    """
    return jsonify(
        {
            "data": user_out_schema.dump(g.current_user),
            "message": "User fetched successfully",
        }
    ), 200


@bp.patch("/update-account")
@jwt_required()
def update_account():
    """
    Update fullname and/or email of the current user
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             fullname: { type: string }
             email: { type: string }
    responses:
      200: { description: OK }
      409: { description: Email already in use }
    """
    payload = request.get_json(silent=True) or {}
    data = update_account_schema.load(payload)
    user = current_app.extensions["session_manager"].update_account(
        g.current_user.id, fullname=data.get("fullname"), email=data.get("email")
    )
    return jsonify({"data": user_out_schema.dump(user), "message": "Account details updated"}), 200


@bp.patch("/avatar")
@jwt_required()
def update_avatar():
    """
    Replace the current user's avatar (multipart field "avatar")
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - in: formData
        name: avatar
        type: file
        required: true
    responses:
      200: { description: OK }
      400: { description: Avatar file is missing }
    """
    user = _update_media("avatar", "avatar")
    return jsonify({"data": user_out_schema.dump(user), "message": "Avatar updated"}), 200


@bp.patch("/cover-image")
@jwt_required()
def update_cover_image():
    """
    Replace the current user's cover image (multipart field "coverImage")
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - in: formData
        name: coverImage
        type: file
        required: true
    responses:
      200: { description: OK }
    """
    user = _update_media("cover_image", "coverImage")
    return jsonify({"data": user_out_schema.dump(user), "message": "Cover image updated"}), 200


@bp.get("/channel/<username>")
@jwt_required()
def channel_profile(username: str):
    """
    Channel profile with subscriber counts
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: username
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Channel does not exist }
    """
    profile = storage.channel_profile(username, viewer_id=g.current_user.id)
    if profile is None:
        raise AccountError(ErrorKind.NOT_FOUND, "Channel does not exist")
    return jsonify({"data": channel_profile_schema.dump(profile), "message": "Channel fetched successfully"}), 200


@bp.get("/watch-history")
@jwt_required()
def watch_history():
    """
    Videos the current user watched, newest first
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    videos = storage.watch_history(g.current_user.id, offset=(page - 1) * limit, limit=limit)
    return jsonify(
        {
            "data": watched_videos_schema.dump(videos),
            "meta": {"page": page, "limit": limit},
            "message": "Watch history fetched successfully",
        }
    ), 200
