from flask import Flask, request, jsonify, render_template, redirect
from werkzeug.exceptions import HTTPException
from config import get_config
from models import db
from extensions import bcrypt, cors, limiter
from sqlalchemy import text
from datetime import datetime
import logging
from logging.handlers import RotatingFileHandler
import os

APP_LOG_HANDLER = 'workspace-app-log'
ERROR_LOG_HANDLER = 'workspace-error-log'

# ============================================
# Logging
# ============================================

def setup_logging(app):
    """
    File logging outside debug and testing

    1. info and error logs go to separate files
    2. RotatingFileHandler keeps log files bounded
    3. one log format everywhere
    """
    if app.debug or app.testing:
        return

    # One set of file handlers per process, however many apps get built
    root = logging.getLogger()
    if any(h.name in (APP_LOG_HANDLER, ERROR_LOG_HANDLER) for h in root.handlers):
        return

    log_dir = app.config['LOG_DIR']
    os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )

    info_handler = RotatingFileHandler(
        os.path.join(log_dir, 'app.log'),
        maxBytes=10240000,  # 10MB
        backupCount=10
    )
    info_handler.name = APP_LOG_HANDLER
    info_handler.setLevel(logging.INFO)
    info_handler.setFormatter(formatter)

    error_handler = RotatingFileHandler(
        os.path.join(log_dir, 'error.log'),
        maxBytes=10240000,  # 10MB
        backupCount=10
    )
    error_handler.name = ERROR_LOG_HANDLER
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    # Root logger: app.logger and the blueprint module loggers both propagate here
    root.addHandler(info_handler)
    root.addHandler(error_handler)
    root.setLevel(getattr(logging, app.config['LOG_LEVEL'].upper(), logging.INFO))

    app.logger.info('Application startup')

# ============================================
# Error handling
# ============================================

def wants_json():
    """AJAX and API callers get JSON errors, browsers get a page"""
    return request.is_json or request.accept_mimetypes.best == 'application/json'


def error_response(error_key, message, status):
    if wants_json():
        return jsonify({
            'error': error_key,
            'message': message,
            'status': status
        }), status
    return render_template('error.html', status=status, message=message), status


def register_error_handlers(app):

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('bad_request', 'The request is malformed or invalid', 400)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('not_found', 'The requested resource does not exist', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('method_not_allowed', 'The HTTP method is not allowed for this endpoint', 405)

    @app.errorhandler(429)
    def rate_limit_exceeded(error):
        app.logger.warning(f"Rate limit exceeded from: {request.remote_addr}")
        return error_response('rate_limit_exceeded', 'Too many requests. Please try again later.', 429)

    @app.errorhandler(500)
    def internal_server_error(error):
        """
        Never leak details to the client

        The full stack trace goes to the log and the transaction is rolled back.
        """
        db.session.rollback()
        app.logger.error(f"Internal server error: {str(error)}", exc_info=True)
        return error_response('internal_server_error', 'An internal error occurred.', 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        # HTTP errors without a handler of their own pass through unchanged
        if isinstance(error, HTTPException):
            return error

        db.session.rollback()
        app.logger.error(f"Unexpected error: {str(error)}", exc_info=True)
        return error_response('unexpected_error', 'An unexpected error occurred. Please try again later.', 500)

# ============================================
# Application factory
# ============================================

def create_app(config_class=None):
    config_class = config_class or get_config()
    config_class.validate()

    app = Flask(__name__)
    app.config.from_object(config_class)

    # AJAX endpoints rely on the session cookie, so credentials must be allowed
    cors.init_app(
        app,
        supports_credentials=True,
        origins=app.config['CORS_ORIGINS'],
        methods=['GET', 'POST', 'DELETE', 'OPTIONS'],
        allow_headers=['Content-Type']
    )

    db.init_app(app)
    bcrypt.init_app(app)
    app.extensions['bcrypt'] = bcrypt
    limiter.init_app(app)

    setup_logging(app)

    with app.app_context():
        db.create_all()
        app.logger.info('Database tables created')

    from login import login_bp
    app.register_blueprint(login_bp)

    from creator import creator_bp
    app.register_blueprint(creator_bp, url_prefix='/creator')

    from commands import register_commands
    register_commands(app)

    register_error_handlers(app)

    @app.before_request
    def log_request():
        if not app.debug:
            app.logger.info(f"Request: {request.method} {request.path} from {request.remote_addr}")

    @app.after_request
    def log_response(response):
        if not app.debug:
            app.logger.info(f"Response: {response.status_code} for {request.method} {request.path}")

        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-XSS-Protection'] = '1; mode=block'

        return response

    @app.route('/health', methods=['GET'])
    @limiter.exempt
    def health_check():
        """Health check for load balancers and monitoring"""
        try:
            db.session.execute(text('SELECT 1'))

            return jsonify({
                'status': 'healthy',
                'database': 'connected',
                'timestamp': datetime.utcnow().isoformat()
            }), 200
        except Exception as e:
            app.logger.error(f"Health check failed: {str(e)}")
            return jsonify({
                'status': 'unhealthy',
                'database': 'disconnected',
                'error': 'Database connection failed'
            }), 503

    @app.route('/', methods=['GET'])
    def home():
        return redirect('/login')

    return app

# ============================================
# Run
# ============================================

if __name__ == '__main__':
    # Use gunicorn or uwsgi in production, not the built-in server
    debug_mode = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    port = int(os.getenv('FLASK_PORT', 5000))

    create_app().run(
        debug=debug_mode,
        port=port,
        host='0.0.0.0'
    )
