import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from flask import current_app

logger = logging.getLogger(__name__)


class TokenIssuer:
    """
    Stateless signer/verifier of manager session tokens (HS256 JWT).

    Nothing is persisted: a token is valid exactly while its signature checks
    out and its `exp` claim lies in the future.
    """

    def __init__(self, secret: str, lifetime_seconds: int = 3600, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Token secret must be configured")
        self.secret = secret
        self.lifetime = timedelta(seconds=lifetime_seconds)
        self.algorithm = algorithm

    def issue(self, manager_id: int, issued_at: Optional[datetime] = None) -> str:
        issued_at = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(manager_id),
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[int]:
        """Returns the manager id, or None for expired, malformed or mis-signed tokens."""
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired session token")
            return None
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected invalid session token: %s", exc)
            return None

        try:
            return int(payload["sub"])
        except (TypeError, ValueError):
            return None


def token_issuer_from_config() -> TokenIssuer:
    cfg = current_app.config
    return TokenIssuer(
        secret=cfg.get("JWT_SECRET") or cfg.get("SECRET_KEY"),
        lifetime_seconds=cfg.get("TOKEN_LIFETIME_SECONDS", 3600),
        algorithm=cfg.get("JWT_ALGORITHM", "HS256"),
    )
