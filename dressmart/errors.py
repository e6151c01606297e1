from flask import current_app, jsonify
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Error raised by an operation and rendered as a JSON failure"""

    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'message': self.message}


class ValidationError(ApiError):
    status_code = 400
    message = 'Invalid request'


class InvalidQuantity(ValidationError):
    message = 'Quantity must be at least 1'


class InvalidPromoCode(ValidationError):
    message = 'Invalid promo code'


class Conflict(ApiError):
    # Legacy clients expect 400 for duplicate registrations
    status_code = 400
    message = 'User already exists'


class Unauthorized(ApiError):
    status_code = 401
    message = 'Authorization token required'


class Forbidden(ApiError):
    status_code = 403
    message = 'Access denied'


class NotFound(ApiError):
    status_code = 404
    message = 'Not found'


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'success': False, 'message': error.description}), error.code

    @app.errorhandler(PyMongoError)
    def database_error(error):
        current_app.logger.exception('Database error: %s', error)
        return jsonify({'success': False, 'message': 'Database error'}), 500

    @app.errorhandler(Exception)
    def internal_error(error):
        current_app.logger.exception('Unhandled error: %s', error)
        return jsonify({'success': False, 'message': 'Internal server error'}), 500
