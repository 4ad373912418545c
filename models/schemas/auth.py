from marshmallow import Schema, fields, pre_load, validate, EXCLUDE

from utils.security import normalize_email


class _EmailNormalizingSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = normalize_email(data["email"])
        return data


class RegisterSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)
    username = fields.String(required=True, validate=validate.Length(min=1, max=255))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class LoginSchema(_EmailNormalizingSchema):
    email = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class EmailOnlySchema(_EmailNormalizingSchema):
    """Body of forgot-password and resend-verification."""
    email = fields.Email(required=True)


class RefreshRequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class ResetPasswordSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    token = fields.String(required=True, validate=validate.Length(min=1))
    new_password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class GoogleLoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id_token = fields.String(required=True, validate=validate.Length(min=1))


class AuthTokensSchema(Schema):
    access_token = fields.String()
    refresh_token = fields.String()
    expires_at = fields.DateTime()
