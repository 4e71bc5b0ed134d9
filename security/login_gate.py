"""
Manager login gate.

Decides whether a login attempt succeeds while defending against credential
stuffing and brute force:

* a blacklisted source IP is rejected before any other work,
* an unknown login name blacklists the source IP,
* wrong passwords are counted per (ip, device) pair and the IP is blacklisted
  once the count reaches MAX_LOGIN_ATTEMPTS,
* a correct password resets the pair's counter and yields a session token.

Each attempt runs as one short store transaction: every ledger/blacklist
change it made is committed, or (on a store failure) none is. Password
verification happens before the transaction opens.
"""
import logging
from datetime import datetime, timedelta

from flask import current_app

from models import db
from repositories import SqlLoginStore
from security.errors import Blocked, InvalidCredentials, LoginError, StoreUnavailable
from security.password import verify_password
from security.tokens import token_issuer_from_config

logger = logging.getLogger(__name__)

REASON_UNKNOWN_LOGIN = "UNKNOWN_LOGIN"
REASON_TOO_MANY_FAILURES = "TOO_MANY_FAILURES"
REASON_BAD_PASSWORD = "BAD_PASSWORD"


class LoginGate:
    def __init__(
        self,
        store,
        tokens,
        max_attempts: int = 3,
        blacklist_unknown_login: bool = True,
        blacklist_ttl_seconds: int = None,
        clock=datetime.utcnow,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.tokens = tokens
        self.max_attempts = max_attempts
        self.blacklist_unknown_login = blacklist_unknown_login
        self.blacklist_ttl_seconds = blacklist_ttl_seconds
        self.clock = clock

    def attempt_login(self, login: str, password: str, device: str, ip: str, timestamp: datetime = None) -> str:
        """
        Returns a session token, or raises Blocked / InvalidCredentials /
        StoreUnavailable.
        """
        now = self.clock()
        seen_at = timestamp or now

        try:
            outcome = self._evaluate(login, password, device, ip, seen_at, now)
            self.store.commit()
        except self.store.errors as exc:
            self._rollback()
            logger.exception("Login store failure for ip=%s device=%s", ip, device)
            raise StoreUnavailable("Login store unavailable") from exc

        if isinstance(outcome, LoginError):
            raise outcome
        return outcome

    def _evaluate(self, login, password, device, ip, seen_at, now):
        blacklist = self.store.blacklist
        attempts = self.store.attempts

        if blacklist.contains(ip, now):
            return Blocked(ip)

        manager = self.store.managers.find_by_login(login)
        if manager is None:
            added = False
            if self.blacklist_unknown_login:
                added = blacklist.add(ip, now, self._blacklist_expiry(now), REASON_UNKNOWN_LOGIN)
            return InvalidCredentials(REASON_UNKNOWN_LOGIN, blacklisted_now=added)

        # bcrypt runs before the first write so no store lock is held during it
        password_ok = verify_password(password, manager.password_hash)

        attempts.upsert(ip, device, manager.id, seen_at)

        if not password_ok:
            fail_count = attempts.increment_failures(ip, device)
            added = False
            if fail_count >= self.max_attempts:
                added = blacklist.add(ip, now, self._blacklist_expiry(now), REASON_TOO_MANY_FAILURES)
            return InvalidCredentials(
                REASON_BAD_PASSWORD,
                manager_id=manager.id,
                fail_count=fail_count,
                blacklisted_now=added,
            )

        attempts.reset_failures(ip, device)
        return self.tokens.issue(manager.id)

    def _blacklist_expiry(self, now):
        if not self.blacklist_ttl_seconds:
            return None
        return now + timedelta(seconds=self.blacklist_ttl_seconds)

    def _rollback(self):
        try:
            self.store.rollback()
        except self.store.errors:
            logger.exception("Rollback failed after login store failure")


def login_gate_from_config() -> LoginGate:
    cfg = current_app.config
    return LoginGate(
        store=SqlLoginStore(db.session),
        tokens=token_issuer_from_config(),
        max_attempts=cfg.get("MAX_LOGIN_ATTEMPTS", 3),
        blacklist_unknown_login=cfg.get("BLACKLIST_UNKNOWN_LOGIN", True),
        blacklist_ttl_seconds=cfg.get("BLACKLIST_TTL_SECONDS"),
    )
