import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _optional_int(name: str):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return int(value)


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    JWT_SECRET = os.getenv("JWT_SECRET", SECRET_KEY)
    JWT_ALGORITHM = "HS256"

    # SQLite database file stored next to the app as phonebook.db.
    # Only SQLite and PostgreSQL URLs are accepted (the login store needs ON CONFLICT).
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "phonebook.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session tokens live for 1 hour
    TOKEN_LIFETIME_SECONDS = 60 * 60

    # Login gate
    MAX_LOGIN_ATTEMPTS = int(os.getenv("MAX_LOGIN_ATTEMPTS", "3"))
    BLACKLIST_UNKNOWN_LOGIN = os.getenv("BLACKLIST_UNKNOWN_LOGIN", "true").lower() == "true"
    BLACKLIST_TTL_SECONDS = _optional_int("BLACKLIST_TTL_SECONDS")  # None = permanent

    # Login requests carry the caller's ip_address in the body
    TRUST_BODY_IP_ADDRESS = os.getenv("TRUST_BODY_IP_ADDRESS", "true").lower() == "true"

    # Password hashing
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # CORS (frontend dev server)
    CORS_ALLOWED_ORIGIN = os.getenv("CORS_ALLOWED_ORIGIN", "http://localhost:5173")
    CORS_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE"]
    CORS_ALLOWED_HEADERS = ["Content-Type", "Authorization"]

    # Basic app settings
    DEBUG = False
