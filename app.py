import logging

from flask import Flask, jsonify
from config.config import Config
from extensions import db, login_manager, migrate

# Route Imports
from routes.auth_routes import auth_bp
from routes.dashboard_routes import dashboard_bp
from routes.field_project_routes import field_project_bp
from routes.cep_routes import cep_bp
from routes.co_curricular_routes import co_curricular_bp
from routes.manage_routes import manage_bp

# Model Imports (registers tables with the metadata for migrations)
import models  # noqa: F401
from services.auth_service import load_session_user
from utils.seed_data import register_commands


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return load_session_user(user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Login required"}), 401

    # Register Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(field_project_bp)
    app.register_blueprint(cep_bp)
    app.register_blueprint(co_curricular_bp)
    app.register_blueprint(manage_bp)

    register_commands(app)

    return app

if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=True)
