"""
Logging configuration with request context for the storefront API
"""
import logging
import sys
from flask import has_request_context, request


class RequestFormatter(logging.Formatter):
    """Custom formatter that adds request context to logs"""

    def format(self, record):
        if has_request_context():
            record.url = request.url
            record.method = request.method
            record.remote_addr = request.remote_addr
        else:
            record.url = 'N/A'
            record.method = 'N/A'
            record.remote_addr = 'N/A'

        return super().format(record)


def setup_logging(app):
    """
    Setup logging configuration for the Flask app.

    ``app.logger`` is the ``storefront`` logger, so the module loggers of
    the services (``storefront.services.*``) propagate into the same handler.
    """
    level = logging.DEBUG if app.debug else logging.INFO

    # Create custom formatter with request context
    formatter = RequestFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - '
        '[%(method)s %(url)s] - '
        '[IP: %(remote_addr)s] - '
        '%(message)s'
    )

    app.logger.setLevel(level)

    # create_app may run several times per process (tests)
    if not any(isinstance(h.formatter, RequestFormatter) for h in app.logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        app.logger.addHandler(console_handler)

    # Prevent duplicate logs
    app.logger.propagate = False

    # Log startup
    app.logger.info('Application logging configured', extra={
        'event_type': 'app_startup',
        'testing': app.testing
    })

    return app.logger
