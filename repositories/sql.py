from datetime import datetime
from typing import Optional

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from models.ip_blacklist import IpBlacklist
from models.login_attempt import LoginAttempt
from models.manager import Manager
from repositories.base import (
    AttemptLedgerRepository,
    BlacklistRepository,
    LoginStore,
    ManagerRepository,
)

# dialects with INSERT ... ON CONFLICT
_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def check_dialect_supported(database_uri: str) -> None:
    """Raises RuntimeError unless the URI names a backend with ON CONFLICT support."""
    backend = make_url(database_uri).get_backend_name()
    if backend not in _UPSERT_INSERTS:
        raise RuntimeError(
            f"Unsupported database backend {backend!r}; expected one of {sorted(_UPSERT_INSERTS)}"
        )


def _upsert_insert(session, table):
    dialect = session.get_bind().dialect.name
    try:
        return _UPSERT_INSERTS[dialect](table)
    except KeyError:
        raise NotImplementedError(f"No ON CONFLICT support for dialect {dialect!r}")


class SqlManagerRepository(ManagerRepository):
    def __init__(self, session):
        self.session = session

    def find_by_login(self, login: str):
        return self.session.query(Manager).filter_by(login=login).first()


class SqlAttemptLedgerRepository(AttemptLedgerRepository):
    def __init__(self, session):
        self.session = session

    def get(self, ip: str, device: str):
        return (
            self.session.query(LoginAttempt)
            .populate_existing()
            .filter_by(ip=ip, device=device)
            .first()
        )

    def upsert(self, ip: str, device: str, manager_id: Optional[int], last_attempt_at: datetime):
        now = datetime.utcnow()
        stmt = _upsert_insert(self.session, LoginAttempt.__table__).values(
            ip=ip,
            device=device,
            manager_id=manager_id,
            fail_count=0,
            last_attempt_at=last_attempt_at,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["ip", "device"],
            set_={
                "manager_id": manager_id,
                "last_attempt_at": last_attempt_at,
                "updated_at": now,
            },
        )
        self.session.execute(stmt)
        return self.get(ip, device)

    def increment_failures(self, ip: str, device: str) -> int:
        key = and_(LoginAttempt.ip == ip, LoginAttempt.device == device)
        # The UPDATE holds the row's write lock until commit, so the read
        # below sees exactly this transaction's increment.
        self.session.execute(
            update(LoginAttempt)
            .where(key)
            .values(fail_count=LoginAttempt.fail_count + 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(
            select(LoginAttempt.fail_count).where(key)
        ).scalar_one()

    def reset_failures(self, ip: str, device: str) -> None:
        self.session.execute(
            update(LoginAttempt)
            .where(LoginAttempt.ip == ip, LoginAttempt.device == device)
            .values(fail_count=0, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )


class SqlBlacklistRepository(BlacklistRepository):
    def __init__(self, session):
        self.session = session

    def contains(self, ip: str, now: datetime) -> bool:
        live = self.session.query(IpBlacklist.id).filter(
            IpBlacklist.ip == ip,
            or_(IpBlacklist.expires_at.is_(None), IpBlacklist.expires_at > now),
        )
        return bool(self.session.query(live.exists()).scalar())

    def add(self, ip: str, now: datetime, expires_at: Optional[datetime] = None,
            reason: Optional[str] = None) -> bool:
        table = IpBlacklist.__table__
        stmt = _upsert_insert(self.session, table).values(
            ip=ip,
            reason=reason,
            created_at=now,
            expires_at=expires_at,
        )
        # Only an expired entry is re-armed; a live one makes this a no-op.
        stmt = stmt.on_conflict_do_update(
            index_elements=["ip"],
            set_={"reason": reason, "created_at": now, "expires_at": expires_at},
            where=and_(table.c.expires_at.isnot(None), table.c.expires_at <= now),
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def remove(self, ip: str) -> bool:
        result = self.session.execute(delete(IpBlacklist.__table__).where(IpBlacklist.ip == ip))
        return result.rowcount > 0


class SqlLoginStore(LoginStore):
    errors = (SQLAlchemyError,)

    def __init__(self, session):
        self.session = session
        self.managers = SqlManagerRepository(session)
        self.attempts = SqlAttemptLedgerRepository(session)
        self.blacklist = SqlBlacklistRepository(session)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
