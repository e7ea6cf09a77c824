from flask import Blueprint, request, current_app
from flask_login import current_user

from storefront import db
from storefront.routes import int_arg, json_body, page_args, success_response
from storefront.services.catalog_service import CatalogService

bp = Blueprint('products', __name__, url_prefix='/api/products')


@bp.route('', methods=['GET'])
def list_products():
    page, limit = page_args()
    search = request.args.get('search', '').strip() or None
    category_id = int_arg('categoryId')

    current_app.logger.info('Products list requested', extra={
        'event_type': 'page_view',
        'page_number': page,
        'category': category_id or 'all',
        'search': search
    })

    result = CatalogService(db.session).list_products(
        search=search, category_id=category_id, page=page, limit=limit
    )

    current_app.logger.info(f'Displaying products page {page}', extra={
        'event_type': 'data_loaded',
        'product_count': len(result.items),
        'total_pages': result.pages
    })

    return success_response([product.to_dict() for product in result.items], pagination=result)


@bp.route('/<int:product_id>', methods=['GET'])
def get_product(product_id):
    # Inactive products are only visible to admins
    include_inactive = current_user.is_authenticated and current_user.is_admin
    product = CatalogService(db.session).get_product(product_id, include_inactive=include_inactive)
    return success_response(product.to_dict())


@bp.route('', methods=['POST'])
def create_product():
    product = CatalogService(db.session).create_product(json_body())
    return success_response(product.to_dict(), message='Product created successfully', status=201)


@bp.route('/<int:product_id>', methods=['PUT'])
def update_product(product_id):
    product = CatalogService(db.session).update_product(product_id, json_body())
    return success_response(product.to_dict(), message='Product updated successfully')


@bp.route('/<int:product_id>', methods=['DELETE'])
def delete_product(product_id):
    CatalogService(db.session).delete_product(product_id)
    return success_response(message='Product deleted successfully')
