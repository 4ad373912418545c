"""
Authentication blueprint (mounted at /api/v1/auth):
- POST /register
- POST /login
- POST /refresh
- POST /revoke            (bearer)
- GET  /verify-email?token=
- POST /forgot-password
- POST /reset-password
- POST /resend-verification
- POST /auth/google-login
- POST /logout            (bearer)

Routes only translate JSON into commands and results into JSON; all state
changes happen in services.auth.handlers behind the mediator.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from models.schemas.auth import (
    RegisterSchema,
    LoginSchema,
    EmailOnlySchema,
    RefreshRequestSchema,
    ResetPasswordSchema,
    GoogleLoginSchema,
    AuthTokensSchema,
)
from services.auth.commands import (
    RegisterCommand,
    LoginCommand,
    RefreshTokenCommand,
    RevokeRefreshTokenCommand,
    LogoutCommand,
    VerifyEmailCommand,
    ForgotPasswordCommand,
    ResetPasswordCommand,
    ResendVerificationEmailCommand,
    GoogleLoginCommand,
)
from utils.decorators import jwt_required, current_user_id

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
email_only_schema = EmailOnlySchema()
refresh_request_schema = RefreshRequestSchema()
reset_password_schema = ResetPasswordSchema()
google_login_schema = GoogleLoginSchema()
auth_tokens_schema = AuthTokensSchema()


def get_mediator():
    return current_app.extensions["mediator"]


def _load(schema):
    return schema.load(request.get_json(silent=True) or {})


def _message(message: str, status: int = 200):
    return jsonify({"message": message}), status


@bp.post("/register")
def register():
    """
    Register a new user and email a verification link.
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
          required: [email, username, password]
          properties:
            email: { type: string }
            username: { type: string }
            password: { type: string }
    responses:
      200:
        description: Registered (message says whether the email went out)
      400:
        description: Email already registered
      422:
        description: Invalid input
    """
    data = _load(register_schema)
    result = get_mediator().send(
        RegisterCommand(email=data["email"], username=data["username"], password=data["password"])
    )
    return _message(result.message)


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
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
      403:
        description: Email not verified
    """
    data = _load(login_schema)
    tokens = get_mediator().send(LoginCommand(email=data["email"], password=data["password"]))
    return jsonify(auth_tokens_schema.dump(tokens)), 200


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
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      400:
        description: Invalid refresh token
      404:
        description: User no longer exists
    """
    data = _load(refresh_request_schema)
    tokens = get_mediator().send(RefreshTokenCommand(refresh_token=data["refresh_token"]))
    return jsonify(auth_tokens_schema.dump(tokens)), 200


@bp.post("/revoke")
@jwt_required()
def revoke():
    """
    Revoke one of the caller's refresh tokens (idempotent)
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
             refresh_token: { type: string }
    responses:
      204:
        description: Revoked
      401:
        description: Unauthorized
      404:
        description: Refresh token not found
    """
    data = _load(refresh_request_schema)
    get_mediator().send(RevokeRefreshTokenCommand(refresh_token=data["refresh_token"], user_id=current_user_id()))
    return ("", 204)


@bp.get("/verify-email")
def verify_email():
    """
    Confirm mailbox ownership with the emailed token
    ---
    tags:
      - Auth
    parameters:
      - in: query
        name: token
        type: string
        required: true
    responses:
      200:
        description: Email verified
      400:
        description: Invalid or expired token
    """
    get_mediator().send(VerifyEmailCommand(token=request.args.get("token", "")))
    return _message("Email verified successfully")


@bp.post("/forgot-password")
def forgot_password():
    """
    Email a password reset link (no response difference for unknown emails)
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
        description: Accepted
      429:
        description: A security email was sent less than 5 minutes ago
    """
    data = _load(email_only_schema)
    get_mediator().send(ForgotPasswordCommand(email=data["email"]))
    return _message("If email exists, reset link sent")


@bp.post("/reset-password")
def reset_password():
    """
    Set a new password using the emailed reset token
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
             new_password: { type: string }
    responses:
      200:
        description: Password reset
      400:
        description: Invalid or expired token
    """
    data = _load(reset_password_schema)
    get_mediator().send(ResetPasswordCommand(token=data["token"], new_password=data["new_password"]))
    return _message("Password reset successfully")


@bp.post("/resend-verification")
def resend_verification():
    """
    Send a fresh verification email
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
        description: Accepted
      429:
        description: A security email was sent less than 5 minutes ago
    """
    data = _load(email_only_schema)
    get_mediator().send(ResendVerificationEmailCommand(email=data["email"]))
    return _message("If the email exists and is not verified, a verification email has been sent.")


@bp.post("/auth/google-login")
def google_login():
    """
    Sign in with a Google ID token (creates the account on first use)
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
             id_token: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid Google token
    """
    data = _load(google_login_schema)
    tokens = get_mediator().send(GoogleLoginCommand(id_token=data["id_token"]))
    return jsonify(auth_tokens_schema.dump(tokens)), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    logout: revokes the given refresh token
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
             refresh_token: { type: string }
    responses:
      204:
        description: ""
      400:
        description: Invalid refresh token
      401:
        description: Unauthorized
    """
    data = _load(refresh_request_schema)
    get_mediator().send(LogoutCommand(refresh_token=data["refresh_token"], user_id=current_user_id()))
    return ("", 204)
