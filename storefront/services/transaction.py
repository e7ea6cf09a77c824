"""
Unit-of-work helper: commit on success, roll back everything on failure.
"""
import logging
from contextlib import contextmanager

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session, operation):
    """
    Run the enclosed block as one transaction on ``session``.

    Any exception rolls back all writes made inside the block and is
    re-raised unchanged.
    """
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.warning(f'{operation} rolled back: {e}', extra={
            'event_type': 'transaction_rollback',
            'operation': operation,
            'exception_type': type(e).__name__
        })
        raise
