import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as parkslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "parkslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # create tables at startup instead of running migrations (local dev / tests)
    AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "false").lower() == "true"

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "parkslot_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 30 minutes
    IDLE_TIMEOUT_SECONDS = 30 * 60

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Booking: max wait for an area's lock, and how often a lost race is retried
    BOOKING_LOCK_TIMEOUT_SECONDS = float(os.getenv("BOOKING_LOCK_TIMEOUT_SECONDS", "5"))
    BOOKING_MAX_RETRIES = int(os.getenv("BOOKING_MAX_RETRIES", "1"))

    # Payments (Stripe Checkout)
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "inr")
    PAYMENT_SUCCESS_URL = os.getenv("PAYMENT_SUCCESS_URL", "http://localhost:5173/ticket")
    PAYMENT_CANCEL_URL = os.getenv("PAYMENT_CANCEL_URL", "http://localhost:5173/payment")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
