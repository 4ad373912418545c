from marshmallow import Schema, fields


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    email = fields.String(allow_none=False)
    username = fields.String(allow_none=True)
    email_verified = fields.Boolean()
    roles = fields.Method("get_roles")
    created_at = fields.DateTime(allow_none=True)

    def get_roles(self, obj):
        return list(getattr(obj, "role_names", []))
