from marshmallow import EXCLUDE, Schema, fields, pre_load, validates, validates_schema, validate, ValidationError

from models.user import normalize_identity

_not_blank = validate.Length(min=1, error="Field may not be blank.")


def _strip(data, *names):
    for name in names:
        if isinstance(data.get(name), str):
            data[name] = data[name].strip()
    return data


class UserRegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    username = fields.String(required=True, validate=_not_blank)
    email = fields.Email(required=True)
    fullname = fields.String(allow_none=True, load_default=None)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name in ("username", "email"):
            if name in data:
                data[name] = normalize_identity(data[name])
        return _strip(data, "fullname")

    @validates("password")
    def validate_password(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Field may not be blank.")


class UserLoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    username = fields.String(load_default=None)
    email = fields.String(load_default=None)
    password = fields.String(required=True, load_only=True, validate=_not_blank)

    @validates_schema
    def require_identity(self, data, **kwargs):
        if not (data.get("username") or "").strip() and not (data.get("email") or "").strip():
            raise ValidationError("username or email is required", "username")


class ChangePasswordSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    old_password = fields.String(required=True, load_only=True, validate=_not_blank)
    new_password = fields.String(required=True, load_only=True, validate=_not_blank)


class UpdateAccountSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    fullname = fields.String(load_default=None)
    email = fields.Email(load_default=None)

    @pre_load
    def normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "email" in data:
            data["email"] = normalize_identity(data["email"])
        return _strip(data, "fullname")

    @validates_schema
    def require_one(self, data, **kwargs):
        if not data.get("fullname") and not data.get("email"):
            raise ValidationError("fullname or email is required")


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    username = fields.String()
    email = fields.String()
    fullname = fields.String(allow_none=True)
    avatar = fields.String(allow_none=True)
    cover_image = fields.String(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class ChannelProfileSchema(Schema):
    id = fields.String()
    username = fields.String()
    fullname = fields.String(allow_none=True)
    email = fields.String()
    avatar = fields.String(allow_none=True)
    cover_image = fields.String(allow_none=True)
    subscribers_count = fields.Integer()
    channels_subscribed_to_count = fields.Integer()
    is_subscribed = fields.Boolean()


class VideoOwnerSchema(Schema):
    username = fields.String()
    fullname = fields.String(allow_none=True)
    avatar = fields.String(allow_none=True)


class WatchedVideoSchema(Schema):
    id = fields.String()
    title = fields.String()
    description = fields.String(allow_none=True)
    video_file = fields.String()
    thumbnail = fields.String(allow_none=True)
    duration = fields.Float()
    views = fields.Integer()
    owner = fields.Nested(VideoOwnerSchema)
