"""Error taxonomy for the task lifecycle.

Every failure the engine reports to a caller is one of these classes. The
Flask error handlers registered here turn them into JSON bodies of the form
``{"error": <message>, "code": <code>}`` with the class's HTTP status.
"""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = 'INTERNAL_ERROR'

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self):
        body = {'error': self.message, 'code': self.code}
        if self.details:
            body['details'] = self.details
        return body


class InvalidInput(MarketplaceError):
    """Malformed, missing or out-of-range request fields."""

    status_code = 400
    code = 'INVALID_INPUT'


class Unauthorized(MarketplaceError):
    """Missing/invalid credentials or a webhook signature mismatch."""

    status_code = 401
    code = 'UNAUTHORIZED'


class Forbidden(MarketplaceError):
    """Caller lacks the required relationship to the entity."""

    status_code = 403
    code = 'FORBIDDEN'


class NotFound(MarketplaceError):
    status_code = 404
    code = 'NOT_FOUND'


class InvalidState(MarketplaceError):
    """Operation is not legal for the entity's current status (includes lost races)."""

    status_code = 409
    code = 'INVALID_STATE'


class PreconditionFailed(MarketplaceError):
    """A side condition beyond status failed (missing proof, helper not payout-ready)."""

    status_code = 412
    code = 'PRECONDITION_FAILED'


class UpstreamError(MarketplaceError):
    """The escrow gateway call failed or returned an error."""

    status_code = 502
    code = 'UPSTREAM_ERROR'


def register_error_handlers(app):
    """Attach JSON error handlers to the Flask app."""
    from neighborly import db

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'error': error.description, 'code': error.name.upper().replace(' ', '_')}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        logger.error(f'Unhandled error: {error}', exc_info=True)
        return jsonify({'error': 'Internal server error', 'code': MarketplaceError.code}), 500
