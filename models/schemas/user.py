from marshmallow import Schema, fields, pre_load, validates, ValidationError, RAISE

from models.user import normalize_email


class LoginSchema(Schema):
    """Login body. Unknown keys are rejected, email is normalized before validation."""

    class Meta:
        unknown = RAISE

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    def __init__(self, *args, password_min_length: int = 8, **kwargs):
        super().__init__(*args, **kwargs)
        self.password_min_length = password_min_length

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=normalize_email(data["email"]))
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < self.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters long."
            )


class IdentityOutSchema(Schema):
    user_id = fields.String()
    role = fields.String()
    token_id = fields.String()


class TokenOutSchema(Schema):
    access_token = fields.String()
    token_type = fields.String(dump_default="bearer")
    expires_in = fields.Integer()
    expires_at = fields.DateTime(format="iso")
