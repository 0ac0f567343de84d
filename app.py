import os
import logging
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


def create_app(test_config=None):
    """Application factory pattern"""
    app = Flask(__name__)
    app.secret_key = os.environ.get("SESSION_SECRET", "dev-secret-key-change-in-production")
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    # Configure the database
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///excel_analytics.db")
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }

    # Configure upload settings
    app.config['MAX_CONTENT_LENGTH'] = int(os.environ.get("MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE))
    app.config['UPLOAD_FOLDER'] = os.environ.get("UPLOAD_FOLDER", 'uploads')
    app.config['LOG_LEVEL'] = os.environ.get("LOG_LEVEL", "INFO")

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(level=getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))

    # Create upload directory if it doesn't exist
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Initialize extensions
    from models import db
    db.init_app(app)

    # Register routes
    from routes import register_routes
    register_routes(app)

    with app.app_context():
        # Create all database tables
        db.create_all()

    return app
