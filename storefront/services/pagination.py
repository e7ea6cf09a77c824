from storefront.errors import ValidationError


def parse_page_args(args, default_limit=10, max_limit=100):
    """Read ``page``/``limit`` query arguments, 1-based page"""
    try:
        page = int(args.get('page', 1))
        limit = int(args.get('limit', default_limit))
    except (TypeError, ValueError):
        raise ValidationError('page and limit must be integers')

    if page < 1 or limit < 1:
        raise ValidationError('page and limit must be positive')

    return page, min(limit, max_limit)


def pagination_to_dict(pagination):
    """``{page, limit, total, totalPages}`` block of a Flask-SQLAlchemy Pagination"""
    return {
        'page': pagination.page,
        'limit': pagination.per_page,
        'total': pagination.total,
        'totalPages': pagination.pages,
    }
