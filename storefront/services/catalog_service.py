"""
Catalog store: categories and products.
"""
import logging
import re
from decimal import Decimal, InvalidOperation

from sqlalchemy import and_, func, or_

from storefront.errors import Conflict, NoFieldsSupplied, NotFound, ValidationError
from storefront.models import Category, Product
from storefront.services.transaction import atomic

logger = logging.getLogger(__name__)

_SLUG_SEPARATORS = re.compile(r'[^a-z0-9]+')


def slugify(name):
    """'Summer Sale!' -> 'summer-sale'"""
    return _SLUG_SEPARATORS.sub('-', (name or '').lower()).strip('-')


def _require_text(data, field, label):
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{label} is required')
    return value.strip()


def _slug_or_derived(value, name):
    """A supplied slug must be text; an absent or blank one is derived from the name"""
    if value is None or value == '':
        return slugify(name)
    return _require_text({'slug': value}, 'slug', 'slug')


def _optional_text(value, field):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string')
    return value


def _parse_price(value):
    if isinstance(value, bool):
        raise ValidationError('price must be a number')
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError('price must be a number')
    if not price.is_finite() or price < 0:
        raise ValidationError('price must be zero or greater')
    return price.quantize(Decimal('0.01'))


def _parse_stock(value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError('stock must be an integer')
    if value < 0:
        raise ValidationError('stock must be zero or greater')
    return value


def _parse_images(value):
    if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
        raise ValidationError('images must be a list of URLs')
    return list(value)


def _parse_bool(value, field):
    if not isinstance(value, bool):
        raise ValidationError(f'{field} must be a boolean')
    return value


class CatalogService:
    """CRUD and listing over categories and products"""

    def __init__(self, session):
        self.session = session

    # Categories

    def _category_counts(self):
        """Categories joined with their live count of active products"""
        product_count = func.count(Product.id).label('product_count')
        return (
            self.session.query(Category, product_count)
            .outerjoin(Product, and_(Product.category_id == Category.id, Product.is_active.is_(True)))
            .group_by(Category.id)
        )

    def list_categories(self):
        rows = self._category_counts().order_by(Category.name.asc()).all()
        return [(category, count) for category, count in rows]

    def get_category(self, category_id):
        row = self._category_counts().filter(Category.id == category_id).first()
        if row is None:
            raise NotFound('Category not found')
        return row[0], row[1]

    def _find_category(self, category_id):
        category = self.session.get(Category, category_id)
        if category is None:
            raise NotFound('Category not found')
        return category

    def _ensure_slug_free(self, model, slug, exclude_id=None, label='Category'):
        if not slug:
            raise ValidationError('slug could not be derived from name')
        query = self.session.query(model.id).filter(model.slug == slug)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if query.first() is not None:
            raise Conflict(f'{label} with this slug already exists')

    def create_category(self, data):
        name = _require_text(data, 'name', 'Category name')
        slug = _slug_or_derived(data.get('slug'), name)

        with atomic(self.session, 'create_category'):
            self._ensure_slug_free(Category, slug)
            category = Category(
                name=name,
                slug=slug,
                description=_optional_text(data.get('description'), 'description'),
                image_url=_optional_text(data.get('image_url'), 'image_url'),
            )
            self.session.add(category)

        logger.info(f'Category created: {category.slug}', extra={
            'event_type': 'category_created',
            'category_id': category.id
        })
        return category

    def update_category(self, category_id, data):
        category = self._find_category(category_id)
        fields = {k: data[k] for k in ('name', 'slug', 'description', 'image_url') if k in data}
        if not fields:
            raise NoFieldsSupplied()

        with atomic(self.session, 'update_category'):
            if 'name' in fields:
                category.name = _require_text(fields, 'name', 'Category name')
                # Renaming re-derives the slug unless one is supplied
                category.slug = _slug_or_derived(fields.get('slug'), category.name)
            elif 'slug' in fields:
                category.slug = _slug_or_derived(fields['slug'], category.name)
            self._ensure_slug_free(Category, category.slug, exclude_id=category.id)

            if 'description' in fields:
                category.description = _optional_text(fields['description'], 'description')
            if 'image_url' in fields:
                category.image_url = _optional_text(fields['image_url'], 'image_url')

        return category

    def delete_category(self, category_id):
        category = self._find_category(category_id)
        product_count = len(category.products)

        with atomic(self.session, 'delete_category'):
            self.session.delete(category)

        logger.info(f'Category {category_id} deleted with {product_count} products', extra={
            'event_type': 'category_deleted',
            'category_id': category_id,
            'product_count': product_count
        })

    # Products

    def list_products(self, search=None, category_id=None, page=1, limit=10):
        """Active products only, newest first"""
        query = self.session.query(Product).filter(Product.is_active.is_(True))

        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))

        if category_id is not None:
            query = query.filter(Product.category_id == category_id)

        query = query.order_by(Product.created_at.desc(), Product.id.desc())
        return query.paginate(page=page, per_page=limit, error_out=False)

    def get_product(self, product_id, include_inactive=False):
        product = self.session.get(Product, product_id)
        if product is None or (not product.is_active and not include_inactive):
            raise NotFound('Product not found')
        return product

    def _check_category(self, category_id):
        if category_id is None:
            return None
        if isinstance(category_id, bool) or not isinstance(category_id, int):
            raise ValidationError('category_id must be an integer')
        if self.session.get(Category, category_id) is None:
            raise ValidationError(f'Category {category_id} does not exist')
        return category_id

    def create_product(self, data):
        name = _require_text(data, 'name', 'Product name')
        slug = _slug_or_derived(data.get('slug'), name)

        with atomic(self.session, 'create_product'):
            self._ensure_slug_free(Product, slug, label='Product')
            product = Product(
                name=name,
                slug=slug,
                description=_optional_text(data.get('description'), 'description'),
                price=_parse_price(data.get('price') or 0),
                stock=_parse_stock(data.get('stock') or 0),
                image_url=_optional_text(data.get('image_url'), 'image_url'),
                images=_parse_images(data.get('images') or []),
                category_id=self._check_category(data.get('category_id')),
                is_active=_parse_bool(data['is_active'], 'is_active') if 'is_active' in data else True,
            )
            self.session.add(product)

        logger.info(f'Product created: {product.slug}', extra={
            'event_type': 'product_created',
            'product_id': product.id
        })
        return product

    def update_product(self, product_id, data):
        product = self.get_product(product_id, include_inactive=True)
        parsers = {
            'name': lambda v: _require_text({'name': v}, 'name', 'Product name'),
            'slug': lambda v: _require_text({'slug': v}, 'slug', 'slug'),
            'description': lambda v: _optional_text(v, 'description'),
            'price': _parse_price,
            'stock': _parse_stock,
            'image_url': lambda v: _optional_text(v, 'image_url'),
            'images': _parse_images,
            'category_id': self._check_category,
            'is_active': lambda v: _parse_bool(v, 'is_active'),
        }
        updates = {field: parse(data[field]) for field, parse in parsers.items() if field in data}
        if not updates:
            raise NoFieldsSupplied()

        with atomic(self.session, 'update_product'):
            if 'slug' in updates:
                self._ensure_slug_free(Product, updates['slug'], exclude_id=product.id, label='Product')
            for field, value in updates.items():
                setattr(product, field, value)

        return product

    def delete_product(self, product_id):
        product = self.get_product(product_id, include_inactive=True)
        with atomic(self.session, 'delete_product'):
            self.session.delete(product)
        logger.info(f'Product {product_id} deleted', extra={
            'event_type': 'product_deleted',
            'product_id': product_id
        })
