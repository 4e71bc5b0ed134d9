import bcrypt
from flask import current_app

def hash_password(plain_password: str, rounds: int = None) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    if rounds is None:
        rounds = current_app.config.get("BCRYPT_ROUNDS", 12)

    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")

def verify_password(plain_password: str, password_hash: str) -> bool:
    """Constant-time bcrypt comparison; a malformed stored hash never matches."""
    if not isinstance(plain_password, str) or not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except ValueError:
        return False
