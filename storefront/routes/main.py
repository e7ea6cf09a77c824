from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storefront import db

bp = Blueprint('main', __name__)


@bp.route('/health')
def health():
    current_app.logger.debug('Health check endpoint called')
    try:
        db.session.execute(text('SELECT 1'))
        connected = True
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Database connection check failed: {e}', extra={
            'event_type': 'health_check_failed'
        })
        connected = False

    return jsonify({
        'success': connected,
        'data': {
            'status': 'healthy' if connected else 'unhealthy',
            'database': 'connected' if connected else 'disconnected',
        }
    }), 200 if connected else 503
