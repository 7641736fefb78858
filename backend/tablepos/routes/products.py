# Overview: Flask API routes for products and dining tables; parses input and returns JSON responses.

# backend/tablepos/routes/products.py
"""
Product and table routes.

SECURITY: All routes require authentication.
- Reads are open to any authenticated user
- Product writes require admin
- Table updates require a floor role (waiter, cashier)
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_admin, require_role
from ..services import products_service
from ..services.auth_service import ROLE_CASHIER, ROLE_WAITER
from ..validation import PosError

products_bp = Blueprint("products", __name__, url_prefix="/api")


@products_bp.get("/products")
@require_auth
def list_products_route():
    """
    List products.

    Query params:
    - category: filter by category (optional)
    - lowStock: "true" to list only products at or below minStock
    """
    try:
        if request.args.get("lowStock", "false").lower() == "true":
            items = products_service.low_stock_products()
        else:
            items = products_service.list_products(category=request.args.get("category") or None)
        return jsonify({"success": True, "products": items}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/products/<path:product_id>")
@require_auth
def get_product_route(product_id: str):
    try:
        return jsonify({"success": True, "product": products_service.get_product(product_id)}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/products")
@require_auth
@require_admin
def create_product_route():
    """Request body: {name, price, category?, stock?, minStock?, image?, description?}"""
    try:
        product = products_service.create_product(request.get_json(silent=True), actor=g.user_id)
        return jsonify({"success": True, "product": product}), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/products/<path:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: str):
    try:
        product = products_service.update_product(product_id, request.get_json(silent=True), actor=g.user_id)
        return jsonify({"success": True, "product": product}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/products/<path:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: str):
    try:
        products_service.delete_product(product_id)
        return jsonify({"success": True}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# TABLES
# =============================================================================

@products_bp.get("/tables")
@require_auth
def list_tables_route():
    try:
        return jsonify({"success": True, "tables": products_service.list_tables()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list tables")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/tables/<path:table_id>")
@require_auth
@require_role(ROLE_WAITER, ROLE_CASHIER)
def update_table_route(table_id: str):
    """Request body: {status?, waiter?, capacity?, number?}"""
    try:
        table = products_service.update_table(table_id, request.get_json(silent=True), actor=g.user_id)
        return jsonify({"success": True, "table": table}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update table")
        return jsonify({"error": "Internal server error"}), 500
