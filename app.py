import click
from flask import Flask
from config import DevConfig
from models import db
from errors import register_error_handlers
from auth import authbp
from routes_catalog import bp as catalog_bp
from routes_orders import bp as orders_bp
from routes_promos import bp as promos_bp
from routes_admin import bp as admin_bp
from routes_account import bp as account_bp
from seed import seed_demo_data


def create_app(config_object=DevConfig):
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)
    register_error_handlers(app)

    app.register_blueprint(authbp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(promos_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(account_bp)

    @app.get("/")
    def index():
        return {"message": "Alhurwear API running"}

    @app.cli.command("seed")
    def seed_command():
        """Load the demo catalog, admin user, customers and promo codes."""
        if seed_demo_data():
            click.echo(f"Seeded demo data (admin login: {app.config['ADMIN_USERNAME']})")
        else:
            click.echo("Database already has products; skipped seeding")

    # Create tables at startup
    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8000, debug=True)
