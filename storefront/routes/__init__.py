from flask import current_app, jsonify, request

from storefront.errors import ValidationError
from storefront.services.pagination import pagination_to_dict, parse_page_args


def success_response(data=None, message=None, status=200, pagination=None):
    """Uniform ``{success, data, message, pagination}`` envelope"""
    body = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    if pagination is not None:
        body['pagination'] = pagination_to_dict(pagination)
    return jsonify(body), status


def json_body():
    """The request body as a dict; anything else is a 400"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def page_args():
    return parse_page_args(
        request.args,
        default_limit=current_app.config.get('DEFAULT_PAGE_SIZE', 10),
        max_limit=current_app.config.get('MAX_PAGE_SIZE', 100),
    )


def int_arg(name):
    """Optional integer query argument"""
    value = request.args.get(name)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f'{name} must be an integer')
