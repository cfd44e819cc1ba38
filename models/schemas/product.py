from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate, post_load


# Largest value a Numeric(10, 2) column holds
MAX_PRICE = Decimal("99999999.99")


def _strip_text(data):
    if isinstance(data.get("name"), str):
        data["name"] = data["name"].strip()
    if "description" in data:
        desc = data["description"]
        # Blank descriptions are stored as NULL
        data["description"] = (desc.strip() or None) if isinstance(desc, str) else None
    if "name" in data and not data["name"]:
        raise ValidationError({"name": ["Name must not be blank."]})
    return data


class ProductCreateSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    description = fields.String(allow_none=True)
    price = fields.Decimal(required=True, places=2, validate=validate.Range(min=0, max=MAX_PRICE))

    @post_load
    def _normalize(self, data, **kwargs):
        return _strip_text(data)


class ProductUpdateSchema(Schema):
    # All optional, but validate if present
    name = fields.String(validate=validate.Length(min=1, max=255))
    description = fields.String(allow_none=True)
    price = fields.Decimal(places=2, validate=validate.Range(min=0, max=MAX_PRICE))

    @post_load
    def _normalize(self, data, **kwargs):
        return _strip_text(data)


class ProductOutSchema(Schema):
    id = fields.Integer()
    name = fields.String()
    description = fields.String(allow_none=True)
    price = fields.Float()
    user_id = fields.Integer(data_key="userId")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
