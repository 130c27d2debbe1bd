import logging

from flask import Flask, jsonify
from config import Config
from routes import (
    health_bp,
    auth_bp,
    areas_bp,
    booking_bp,
    payments_bp,
    webhook_bp,
    admin_bp,
)

from models import db
from flask_migrate import Migrate
from reservations.errors import ReservationError
from utils.seed import seed_roles
from utils.auth_context import load_current_user


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(areas_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhook_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(ReservationError)
    def _reservation_error(exc):
        return jsonify(error=exc.message), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
import click
from sqlalchemy.exc import IntegrityError
from models.user import User, Role
from models.parking_area import ParkingArea
from reservations.integrity import find_double_bookings
from utils.areas import create_area

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("create-area")
    @click.argument("name")
    @click.argument("city")
    @click.option("--slots", "slot_count", default=10, show_default=True, type=int)
    @click.option("--address", default=None)
    @click.option("--lat", "latitude", default=None, type=float)
    @click.option("--long", "longitude", default=None, type=float)
    @click.option("--price-per-hour", default=0, show_default=True, type=int, help="Smallest currency unit.")
    def create_area_command(name, city, slot_count, address, latitude, longitude, price_per_hour):
        """Create a parking area with numbered slots."""
        if ParkingArea.query.filter_by(name=name.strip()).first():
            raise click.ClickException(f"Parking area '{name}' already exists")
        try:
            area = create_area(name, city, address, latitude, longitude, price_per_hour, slot_count)
            db.session.commit()
        except ReservationError as exc:
            raise click.ClickException(exc.message)
        except IntegrityError:
            db.session.rollback()
            raise click.ClickException(f"Parking area '{name}' already exists")
        click.echo(f"Created {area.name} ({area.city}) with {slot_count} slots")

    @app.cli.command("check-bookings")
    @click.option("--area-id", default=None, type=int)
    def check_bookings(area_id):
        """Report overlapping live bookings on the same slot."""
        conflicts = find_double_bookings(area_id)
        for first, second in conflicts:
            click.echo(
                f"slot {first.slot_id}: booking {first.id} "
                f"[{first.start_time.isoformat()}, {first.end_time.isoformat()}) overlaps booking {second.id} "
                f"[{second.start_time.isoformat()}, {second.end_time.isoformat()})"
            )
        if conflicts:
            raise click.ClickException(f"{len(conflicts)} double booking(s) found")
        click.echo("No double bookings")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
