import logging

from flask import Flask, jsonify, request

from .config import Config
from .errors import register_error_handlers
from .extensions import cors, mail, mongo


def create_app(overrides=None):
    """Build the Flask application; ``overrides`` replaces config values"""
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))
    if app.config['JWT_SECRET'] == Config.SECRET_KEY and not app.config.get('TESTING'):
        app.logger.warning('JWT_SECRET is not set, tokens are signed with SECRET_KEY')

    mongo.init_app(app)
    mail.init_app(app)
    cors.init_app(app, origins=app.config['CORS_ORIGINS'])

    from .admin import admin_bp
    from .auth import auth_bp
    from .cart import cart_bp
    from .catalog import catalog_bp
    from .orders import orders_bp
    from .uploads import uploads_bp

    for blueprint in (auth_bp, catalog_bp, cart_bp, orders_bp, admin_bp, uploads_bp):
        app.register_blueprint(blueprint)

    register_error_handlers(app)

    @app.route('/')
    def home():
        return jsonify({'success': True, 'message': 'Dressmart backend running'})

    @app.after_request
    def set_cache_headers(response):
        if request.path.startswith('/images/'):
            # Uploaded names are unique, so images never change
            response.headers['Cache-Control'] = 'public, max-age=2592000, immutable'
        else:
            response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
        return response

    return app
