# cloudcart/errors.py
"""
Error types raised by the API and the handlers that render them as JSON.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class CloudCartError(Exception):
    """Base error for all CloudCart failures"""
    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(CloudCartError):
    """Missing or malformed input"""
    status_code = 400
    message = 'Invalid request'


class Unauthenticated(CloudCartError):
    """Missing, invalid or expired credential"""
    status_code = 401
    message = 'Invalid token'


class Forbidden(CloudCartError):
    """Authenticated but lacking a capability or ownership"""
    status_code = 403
    message = 'Access denied'


class NotFound(CloudCartError):
    status_code = 404
    message = 'Not found'


class Conflict(CloudCartError):
    # duplicate email is reported as a plain 400
    status_code = 400
    message = 'Conflict'


class InternalError(CloudCartError):
    status_code = 500


def register_error_handlers(app, db):
    @app.errorhandler(CloudCartError)
    def handle_cloudcart_error(exc):
        db.session.rollback()
        return jsonify({'message': exc.message}), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc):
        return jsonify({'message': exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        db.session.rollback()
        logger.exception('Unhandled exception: %s', exc)
        err = InternalError()
        return jsonify({'message': err.message}), err.status_code
