from flask import Blueprint

from storefront import db
from storefront.routes import json_body, success_response
from storefront.services.catalog_service import CatalogService

bp = Blueprint('categories', __name__, url_prefix='/api/categories')


@bp.route('', methods=['GET'])
def list_categories():
    rows = CatalogService(db.session).list_categories()
    return success_response([category.to_dict(product_count=count) for category, count in rows])


@bp.route('/<int:category_id>', methods=['GET'])
def get_category(category_id):
    category, count = CatalogService(db.session).get_category(category_id)
    return success_response(category.to_dict(product_count=count))


@bp.route('', methods=['POST'])
def create_category():
    category = CatalogService(db.session).create_category(json_body())
    return success_response(category.to_dict(), message='Category created successfully', status=201)


@bp.route('/<int:category_id>', methods=['PUT'])
def update_category(category_id):
    category = CatalogService(db.session).update_category(category_id, json_body())
    return success_response(category.to_dict(), message='Category updated successfully')


@bp.route('/<int:category_id>', methods=['DELETE'])
def delete_category(category_id):
    CatalogService(db.session).delete_category(category_id)
    return success_response(message='Category deleted successfully')
