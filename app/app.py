import logging
import os
import sys

import structlog
from flask import Flask

from api_responses import success_response
from auth import login_manager, init_users
from constants import BUILD_VERSION, MEDIATRACK_DB
from db import db, init_db
from exceptions import register_exception_handlers
from routes.cache import cache_bp
from routes.library import library_bp
from settings import load_settings
from utils import ColoredFormatter, FilterRemoveDateFromWerkzeugLogs, get_or_create_secret_key


def configure_logging():
    formatter = ColoredFormatter(
        '[%(asctime)s.%(msecs)03d] %(levelname)s (%(module)s) %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=logging.DEBUG if os.environ.get('LOG_LEVEL', '').upper() == 'DEBUG' else logging.INFO,
        handlers=[handler]
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if os.environ.get('LOG_FORMAT') == 'json' else structlog.dev.ConsoleRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Apply filter to hide date from http access logs
    logging.getLogger('werkzeug').addFilter(FilterRemoveDateFromWerkzeugLogs())


configure_logging()
logger = structlog.get_logger('main')


def create_app(config_overrides=None):
    """Application factory"""
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = MEDIATRACK_DB
    app.config['SECRET_KEY'] = get_or_create_secret_key()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.json.sort_keys = False
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize components
    db.init_app(app)
    login_manager.init_app(app)

    # Register exception handlers
    register_exception_handlers(app)

    # Register blueprints
    app.register_blueprint(cache_bp)
    app.register_blueprint(library_bp)

    @app.route('/api/health')
    def health():
        return success_response({"status": "ok", "version": BUILD_VERSION})

    with app.app_context():
        # Re-read settings.yaml for every new app
        load_settings(force=True)

        # Initialize database
        init_db(app)
        init_users(app)

    return app


if __name__ == '__main__':
    app = create_app()
    port = int(os.environ.get('PORT', 8465))
    logger.info(f'Build Version: {BUILD_VERSION}')
    logger.info(f'Starting server on port {port}...')
    app.run(debug=False, use_reloader=False, host="0.0.0.0", port=port)
    logger.info('Shutting down server...')
