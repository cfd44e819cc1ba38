from marshmallow import Schema, fields, pre_load, validate

PASSWORD_MIN_LENGTH = 6


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class _EmailNormalizingSchema(Schema):
    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=_norm_email(data["email"]))
        return data


class SignupSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)
    password = fields.String(
        required=True,
        load_only=True,
        validate=validate.Length(min=PASSWORD_MIN_LENGTH,
                                 error="Password must be at least 6 characters long."),
    )
    first_name = fields.String(required=True, data_key="firstName", validate=validate.Length(min=1, max=100))
    last_name = fields.String(allow_none=True, data_key="lastName", validate=validate.Length(max=100))


class LoginSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, validate=validate.Length(min=1))


class RefreshTokenSchema(Schema):
    refresh_token = fields.String(required=True, data_key="refreshToken", validate=validate.Length(min=1))


class PasswordResetRequestSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)


class PasswordResetConfirmSchema(Schema):
    token = fields.String(required=True, validate=validate.Length(min=1))
    new_password = fields.String(
        required=True,
        data_key="newPassword",
        validate=validate.Length(min=PASSWORD_MIN_LENGTH,
                                 error="New password must be at least 6 characters long."),
    )


class UserOutSchema(Schema):
    id = fields.Integer()
    email = fields.String()
    first_name = fields.String(allow_none=True, data_key="firstName")
    last_name = fields.String(allow_none=True, data_key="lastName")
    created_at = fields.DateTime(data_key="createdAt")


class CurrentUserSchema(Schema):
    id = fields.Integer()
    email = fields.String()
    first_name = fields.String(allow_none=True, data_key="firstName")
    last_name = fields.String(allow_none=True, data_key="lastName")
