from app.api.admin.clients import admin_clients_bp
from app.api.admin.consumption_entries import admin_consumption_bp
from app.api.admin.mitigation_entries import admin_mitigation_bp
from app.api.admin.rewards import admin_rewards_bp
from app.api.admin_dashboard.admin_analytics import admin_analytics_bp
from app.api.client.activity import client_activity_bp
from app.api.client.profile import client_profile_bp
from app.routes.auth import auth_bp
from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv
from flasgger import Swagger
from swagger__config import SWAGGER_CONFIG, SWAGGER_TEMPLATE
import os

load_dotenv()
from app.config import Config  # noqa: E402
from app.extensions import db  # noqa: E402
from app.utils.s3_utils import ObjectStorage  # noqa: E402


def create_app(config_overrides=None):
    print("Building Petgas Portal app")
    app = Flask(__name__)
    try:
        print("Loading config...")
        app.config.from_object(Config)
        if config_overrides:
            app.config.update(config_overrides)
        print("Config loaded successfully")

        print("Initializing CORS...")
        CORS(app)
        print("CORS initialized")

        print("Initializing database...")
        db.init_app(app)
        print("Database initialized")

        print("Initializing object storage...")
        app.extensions["object_storage"] = ObjectStorage.from_config(app.config)
        print(f"Object storage initialized (bucket: {app.config.get('S3_BUCKET_NAME')})")

        print("Initializing Swagger/OpenAPI documentation...")
        # Determine host based on environment
        host = os.environ.get("API_HOST", "127.0.0.1:5000")
        swagger_template = SWAGGER_TEMPLATE.copy()
        swagger_template["host"] = host

        Swagger(app, config=SWAGGER_CONFIG, template=swagger_template)
        print("Swagger initialized - Access at /api/docs")
        print("Registering blueprints...")

        blueprints = [
            auth_bp,
            client_profile_bp,
            client_activity_bp,
            admin_clients_bp,
            admin_mitigation_bp,
            admin_consumption_bp,
            admin_rewards_bp,
            admin_analytics_bp,
        ]

        for bp in blueprints:
            app.register_blueprint(bp)
            print(f"  ✓ {bp.name} registered")

        print("All blueprints registered successfully")
        @app.route("/")
        def home():
            """
            Root endpoint - API status
            ---
            tags:
              - Utility
            responses:
              200:
                description: API is running
                schema:
                  type: object
                  properties:
                    status:
                      type: string
                    message:
                      type: string
            """
            return {"status": "ok", "message": "Petgas Portal backend is running!"}, 200

        route_count = len(list(app.url_map.iter_rules()))
        print(f"Total routes registered: {route_count}")

    except Exception as e:
        print(f"Error during app creation: {e}")
        import traceback

        print(f"Full traceback: {traceback.format_exc()}")
        raise

    print("Petgas Portal app ready")
    return app


app = create_app()
print(f"App created: {app}")
print(f"Debug: {app.debug}, testing: {app.testing}")


if __name__ == "__main__":
    # Create a .env containing at least:
    #       DATABASE_URL=postgresql+psycopg2://<USER>:<PASSWORD>@<HOST>:5432/postgres
    #       SUPABASE_URL, SUPABASE_JWT_SECRET, ADMIN_EMAIL, ADMIN_PASSWORD_HASH

    port = int(os.environ.get("PORT", 5000))
    app.run(
        host="0.0.0.0", port=port, debug=os.environ.get("FLASK_ENV") != "production"
    )
