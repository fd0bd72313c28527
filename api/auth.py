"""
Authentication blueprint (mounted under /api/v1/users):
- POST /register
- POST /login
- POST /logout
- POST /refresh-token
- POST /change-password

Access and refresh tokens travel both in the response body and as
http-only cookies (accessToken / refreshToken).
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import (
    ChangePasswordSchema,
    UserLoginSchema,
    UserOutSchema,
    UserRegisterSchema,
)
from utils.decorators import jwt_required
from utils.sessions import SessionManager
from utils.tokens import ACCESS_COOKIE, REFRESH_COOKIE, TokenPair
from utils.uploader import discard_uploads, stash_upload

bp = Blueprint("auth", __name__)

user_register_schema = UserRegisterSchema()
user_login_schema = UserLoginSchema()
change_password_schema = ChangePasswordSchema()
user_out_schema = UserOutSchema()


def _sessions() -> SessionManager:
    return current_app.extensions["session_manager"]


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config["AUTH_COOKIE_SECURE"],
        "samesite": current_app.config["AUTH_COOKIE_SAMESITE"],
        "path": "/",
    }


def _set_token_cookies(response, pair: TokenPair):
    options = _cookie_options()
    response.set_cookie(
        ACCESS_COOKIE,
        pair.access_token,
        max_age=int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
        **options,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=int(current_app.config["REFRESH_TOKEN_EXPIRES"].total_seconds()),
        **options,
    )
    return response


def _token_body(pair: TokenPair) -> dict:
    return {
        "access_token": pair.access_token,
        "refresh_token": pair.refresh_token,
        "token_type": "bearer",
        "expires_in": int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
    }


@bp.post("/register")
def register():
    """
    Register a new user. Accepts JSON, or multipart with optional avatar/coverImage files.
    ---
    tags:
      - Auth
    consumes:
      - application/json
      - multipart/form-data
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            username: { type: string }
            email: { type: string }
            fullname: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: User already exists
    """
    payload = request.get_json(silent=True) or request.form.to_dict()
    data = user_register_schema.load(payload)

    tmp_dir = current_app.config["UPLOAD_TMP_DIR"]
    avatar_path = stash_upload(request.files.get("avatar"), tmp_dir)
    cover_path = stash_upload(request.files.get("coverImage") or request.files.get("cover_image"), tmp_dir)
    try:
        user = _sessions().register(
            username=data["username"],
            email=data["email"],
            password=data["password"],
            fullname=data.get("fullname"),
            avatar_path=avatar_path,
            cover_image_path=cover_path,
        )
    finally:
        discard_uploads(avatar_path, cover_path)

    return jsonify(
        {
            "data": user_out_schema.dump(user),
            "message": "User registered successfully",
        }
    ), 201


@bp.post("/login")
def login():
    """
    Login with username or email: returns access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             username: { type: string }
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens, also set as cookies)
      401:
        description: Invalid user credentials
      404:
        description: User does not exist
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    user, pair = _sessions().login(
        password=data["password"],
        username=data.get("username"),
        email=data.get("email"),
    )

    response = jsonify(
        {
            "data": {"user": user_out_schema.dump(user), **_token_body(pair)},
            "message": "User logged in successfully",
        }
    )
    return _set_token_cookies(response, pair), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: revokes the current refresh token and clears both cookies
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    _sessions().logout(g.current_user.id)

    response = jsonify({"data": {}, "message": "User logged out"})
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
    return response, 200


@bp.post("/refresh-token")
def refresh_token():
    """
    Use a refresh token to obtain new access and refresh tokens (rotation).
    The refreshToken cookie wins over the body field.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: New token pair
      401:
        description: Missing, invalid, expired or already used refresh token
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    presented = (
        request.cookies.get(REFRESH_COOKIE)
        or payload.get("refresh_token")
        or payload.get("refreshToken")
    )

    pair = _sessions().refresh(presented)

    response = jsonify({"data": _token_body(pair), "message": "Access token refreshed"})
    return _set_token_cookies(response, pair), 200


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the current user's password
    ---
    tags:
      - Auth
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
             old_password: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: Password changed
      400:
        description: Invalid old password
    """
    payload = request.get_json(silent=True) or {}
    data = change_password_schema.load(payload)

    _sessions().change_password(g.current_user.id, data["old_password"], data["new_password"])
    return jsonify({"data": {}, "message": "Password changed successfully"}), 200
