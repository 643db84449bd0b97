from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS
from flask_restx import Api
import logging
from dotenv import load_dotenv

load_dotenv()

db = SQLAlchemy()
migrate = Migrate()


def create_app(config_name='development', escrow_gateway=None):
    app = Flask(__name__)

    # Config
    from neighborly.config import get_config
    app.config.from_object(get_config(config_name))

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    CORS(app)

    # Escrow gateway (Stripe unless a replacement is injected)
    from neighborly.services.escrow import StripeEscrowGateway
    if escrow_gateway is None:
        escrow_gateway = StripeEscrowGateway()
    escrow_gateway.init_app(app)

    # API docs
    Api(app, version='1.0', title='Neighborly API', doc='/docs')

    with app.app_context():
        # Import models so metadata knows every table
        from neighborly import models  # noqa: F401
        if app.config.get('AUTO_CREATE_TABLES'):
            db.create_all()

    from neighborly.errors import register_error_handlers
    register_error_handlers(app)

    from neighborly.routes import register_routes
    register_routes(app)

    # Health check
    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok'}, 200

    @app.route('/api/health', methods=['GET'])
    def api_health():
        return {'status': 'ok'}, 200

    return app
