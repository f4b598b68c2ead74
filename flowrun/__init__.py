from flask import Flask
from flask_cors import CORS
import logging
import os
from flowrun.config import Config
from flowrun.flow_engine.variable_store import InMemoryVariableStore


def create_app(config_class=Config, variable_store=None, dispatcher=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Frontend origins (local dev) plus CORS_ORIGINS
    allowed_origins = [
        'http://localhost:5173',  # Vite dev server
        'http://localhost:3000',
    ]

    env_origins = app.config.get('CORS_ORIGINS') or os.getenv('CORS_ORIGINS', '')
    if env_origins:
        allowed_origins.extend([origin.strip() for origin in env_origins.split(',') if origin.strip()])

    CORS(app,
         resources={r"/api/*": {"origins": allowed_origins}},
         supports_credentials=False,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "OPTIONS"])

    # External variable/secret store; the engine only reads it
    app.extensions['flowrun.variable_store'] = variable_store or InMemoryVariableStore()
    # None means a fresh default dispatcher per request
    app.extensions['flowrun.dispatcher'] = dispatcher

    from flowrun.pieces import init_plugins
    init_plugins()

    from flowrun.routes import health
    app.register_blueprint(health.bp)

    from flowrun.routes import flow_runs
    app.register_blueprint(flow_runs.flow_runs_bp)

    from flowrun.routes import pieces
    app.register_blueprint(pieces.pieces_bp)

    return app
