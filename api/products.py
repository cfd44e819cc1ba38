from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, abort, g, current_app
from sqlalchemy import or_, func

from models.product import Product
from models.schemas.product import ProductCreateSchema, ProductUpdateSchema, ProductOutSchema
from utils.decorators import jwt_required

bp = Blueprint("products", __name__)

# Schemas
product_create_schema = ProductCreateSchema()
product_update_schema = ProductUpdateSchema()
product_out_schema = ProductOutSchema()
products_out_schema = ProductOutSchema(many=True)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# ids and OFFSET are bound as 64-bit integers
MAX_BIGINT = 2 ** 63 - 1


def _session():
    return current_app.extensions["storage"].get_session()


def _storage():
    return current_app.extensions["storage"]


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
    except ValueError:
        abort(400, description="Page must be a valid positive integer")
    try:
        limit = int(request.args.get("limit", str(DEFAULT_LIMIT)))
    except ValueError:
        abort(400, description=f"Limit must be a valid integer between 1 and {MAX_LIMIT}")
    if limit < 1 or limit > MAX_LIMIT:
        abort(400, description=f"Limit must be a valid integer between 1 and {MAX_LIMIT}")
    if page < 1 or (page - 1) * limit > MAX_BIGINT:
        abort(400, description="Page must be a valid positive integer")
    return page, limit


def escape_like(term: str) -> str:
    """Make % and _ match literally in a LIKE pattern."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parse_product_id(raw: str) -> int:
    try:
        product_id = int(raw)
    except ValueError:
        abort(400, description="Invalid product ID")
    if product_id < 1 or product_id > MAX_BIGINT:
        abort(400, description="Invalid product ID")
    return product_id


def owned_product_or_404(product_id: int) -> Product:
    p = (
        _session().query(Product)
        .filter(Product.id == product_id, Product.user_id == g.current_user.id)
        .first()
    )
    if not p:
        abort(404, description=f"Product with ID {product_id} not found")
    return p


def name_taken(name: str, exclude_id: int | None = None) -> bool:
    query = _session().query(Product.id).filter(
        Product.user_id == g.current_user.id, Product.name == name
    )
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


@bp.post("/products")
@jwt_required()
def create_product():
    """
    Create a new product owned by the caller
    ---
    tags:
      - Products
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name: { type: string, maxLength: 255 }
            description: { type: string }
            price: { type: number, minimum: 0, example: 999.99 }
    responses:
      201:
        description: Created
      401:
        description: Unauthorized
      409:
        description: A product with this name already exists
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = product_create_schema.load(payload)

    if name_taken(data["name"]):
        abort(409, description="A product with this name already exists")

    p = Product(
        name=data["name"],
        description=data.get("description"),
        price=data["price"],
        user_id=g.current_user.id,
    )
    _storage().new(p)
    _storage().save()
    current_app.logger.info("Product %s created by user %s", p.id, g.current_user.id)

    return jsonify(product_out_schema.dump(p)), 201


@bp.get("/products")
@jwt_required()
def list_products():
    """
    List the caller's products with search and pagination
    ---
    tags:
      - Products
    security:
      - Bearer: []
    parameters:
      - in: query
        name: search
        type: string
        description: "Case-insensitive substring search on name and description"
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 10
        maximum: 100
    responses:
      200:
        description: List of products
      400:
        description: Invalid page or limit
    """
    page, limit = parse_pagination()
    search = (request.args.get("search") or "").strip()

    query = _session().query(Product).filter(Product.user_id == g.current_user.id)
    if search:
        pattern = f"%{escape_like(search.lower())}%"
        query = query.filter(
            or_(
                func.lower(Product.name).like(pattern, escape="\\"),
                func.lower(Product.description).like(pattern, escape="\\"),
            )
        )

    total = query.count()
    rows = (
        query.order_by(Product.created_at.desc(), Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return jsonify(
        {
            "data": products_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total},
        }
    )


@bp.get("/products/<product_id>")
@jwt_required()
def get_product(product_id: str):
    """
    Get one of the caller's products
    ---
    tags:
      - Products
    security:
      - Bearer: []
    parameters:
      - in: path
        name: product_id
        type: integer
        required: true
    responses:
      200:
        description: Product found
      400:
        description: Invalid product ID
      404:
        description: Not found
    """
    p = owned_product_or_404(parse_product_id(product_id))
    return jsonify(product_out_schema.dump(p))


@bp.patch("/products/<product_id>")
@jwt_required()
def update_product(product_id: str):
    """
    Update a product (partial)
    ---
    tags:
      - Products
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: path
        name: product_id
        type: integer
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name: { type: string }
            description: { type: string }
            price: { type: number, minimum: 0 }
    responses:
      200:
        description: Updated
      404:
        description: Not found
      409:
        description: Name already used by another of the caller's products
      422:
        description: Validation error
    """
    p = owned_product_or_404(parse_product_id(product_id))

    payload = request.get_json(silent=True) or {}
    data = product_update_schema.load(payload)
    if not data:
        return jsonify(product_out_schema.dump(p))

    if "name" in data and data["name"] != p.name and name_taken(data["name"], exclude_id=p.id):
        abort(409, description="A product with this name already exists")

    for field in ["name", "description", "price"]:
        if field in data:
            setattr(p, field, data[field])

    _storage().save()
    return jsonify(product_out_schema.dump(p))


@bp.delete("/products/<product_id>")
@jwt_required()
def delete_product(product_id: str):
    """
    Delete a product
    ---
    tags:
      - Products
    security:
      - Bearer: []
    parameters:
      - in: path
        name: product_id
        type: integer
        required: true
    responses:
      200:
        description: Deleted
      404:
        description: Not found
    """
    p = owned_product_or_404(parse_product_id(product_id))
    _storage().delete(p)
    _storage().save()
    current_app.logger.info("Product %s deleted by user %s", p.id, g.current_user.id)
    return jsonify({"message": "Product deleted successfully"}), 200
