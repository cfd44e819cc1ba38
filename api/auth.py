"""
Authentication blueprint:
- POST /auth/signup
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/password-reset
- GET  /auth/password-reset/validate/<token>
- POST /auth/password-reset/confirm
- GET|POST /auth/me

Routes only validate input and shape output; the session rules live in
services.sessions.SessionService.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from models.schemas.user import (
    SignupSchema,
    LoginSchema,
    RefreshTokenSchema,
    PasswordResetRequestSchema,
    PasswordResetConfirmSchema,
    UserOutSchema,
    CurrentUserSchema,
)
from utils.decorators import jwt_required, get_session_service

bp = Blueprint("auth", __name__, url_prefix="/auth")

signup_schema = SignupSchema()
login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()
reset_request_schema = PasswordResetRequestSchema()
reset_confirm_schema = PasswordResetConfirmSchema()
user_out_schema = UserOutSchema()
current_user_schema = CurrentUserSchema()


def _load(schema):
    payload = request.get_json(silent=True) or {}
    return schema.load(payload)


def _token_fields(access_token: str, refresh_token: str) -> dict:
    return {
        "accessToken": access_token,
        "refreshToken": refresh_token,
        "tokenType": "bearer",
        "expiresIn": get_session_service().signer.expires_in,
    }


def _auth_payload(result) -> dict:
    return {
        "user": user_out_schema.dump(result.user),
        **_token_fields(result.access_token, result.refresh_token),
    }


@bp.post("/signup")
def signup():
    """
    Register a new user and open a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password, firstName]
          properties:
            email: { type: string }
            password: { type: string, minLength: 6 }
            firstName: { type: string }
            lastName: { type: string }
    responses:
      201:
        description: Created (returns user and tokens)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    data = _load(signup_schema)
    result = get_session_service().signup(
        data["email"], data["password"], data["first_name"], data.get("last_name")
    )
    return jsonify(_auth_payload(result)), 201


@bp.post("/login")
def login():
    """
    Login: return the user, an access token and a refresh token
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
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
    """
    data = _load(login_schema)
    result = get_session_service().login(data["email"], data["password"])
    return jsonify(_auth_payload(result)), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new access/refresh pair (rotation)
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
             refreshToken: { type: string }
    responses:
      200:
        description: New token pair; the presented refresh token is dead
      401:
        description: Invalid or expired refresh token
    """
    data = _load(refresh_token_schema)
    pair = get_session_service().refresh(data["refresh_token"])
    return jsonify(_token_fields(pair.access_token, pair.refresh_token)), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: revoke the given refresh token. Succeeds even if it is unknown.
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
             refreshToken: { type: string }
    responses:
      200:
        description: Logged out
      401:
        description: Missing or invalid access token
    """
    data = _load(refresh_token_schema)
    message = get_session_service().logout(data["refresh_token"])
    return jsonify({"message": message}), 200


@bp.post("/password-reset")
def request_password_reset():
    """
    Request a password reset link. The answer is the same whether or not the email exists.
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
             email: { type: string }
    responses:
      200:
        description: Generic confirmation
    """
    data = _load(reset_request_schema)
    message = get_session_service().request_password_reset(data["email"])
    return jsonify({"message": message}), 200


@bp.get("/password-reset/validate/<token>")
def validate_password_reset(token: str):
    """
    Check whether a reset token is still usable
    ---
    tags:
      - Auth
    parameters:
      - in: path
        name: token
        type: string
        required: true
    responses:
      200:
        description: "{valid, message}"
    """
    check = get_session_service().validate_password_reset(token)
    return jsonify({"valid": check.valid, "message": check.message}), 200


@bp.post("/password-reset/confirm")
def confirm_password_reset():
    """
    Set a new password using a reset token
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
             token: { type: string }
             newPassword: { type: string, minLength: 6 }
    responses:
      200:
        description: Password changed
      400:
        description: Invalid or expired token
    """
    data = _load(reset_confirm_schema)
    message = get_session_service().confirm_password_reset(data["token"], data["new_password"])
    return jsonify({"message": message}), 200


@bp.route("/me", methods=["GET", "POST"])
@jwt_required()
def me():
    """
    Get current user info
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify(current_user_schema.dump(g.current_user)), 200
