"""
Storage contracts the login gate depends on.

The gate never issues queries itself; it talks to these three repositories and
commits or rolls back through the LoginStore that bundles them, so the storage
engine can be swapped without touching the gate.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional


class ManagerRepository(ABC):
    @abstractmethod
    def find_by_login(self, login: str):
        """Return the manager with this login name, or None."""


class AttemptLedgerRepository(ABC):
    @abstractmethod
    def get(self, ip: str, device: str):
        """Return the attempt record for (ip, device), or None."""

    @abstractmethod
    def upsert(self, ip: str, device: str, manager_id: Optional[int], last_attempt_at: datetime):
        """
        Create the (ip, device) record with fail_count 0 if it does not exist,
        then stamp it with manager_id and last_attempt_at. Returns the record.
        """

    @abstractmethod
    def increment_failures(self, ip: str, device: str) -> int:
        """
        Atomically add one to the failure counter and return the new value.
        Concurrent callers on the same key must never lose an increment.
        """

    @abstractmethod
    def reset_failures(self, ip: str, device: str) -> None:
        ...


class BlacklistRepository(ABC):
    @abstractmethod
    def contains(self, ip: str, now: datetime) -> bool:
        """True when ip has an entry that has not expired at `now`."""

    @abstractmethod
    def add(self, ip: str, now: datetime, expires_at: Optional[datetime] = None,
            reason: Optional[str] = None) -> bool:
        """
        Idempotent. Returns True only when this call created the entry (or
        re-armed an expired one); False when ip was already blacklisted.
        """

    @abstractmethod
    def remove(self, ip: str) -> bool:
        ...


class LoginStore(ABC):
    """Unit of work for one login attempt."""

    # exception types the backing store raises on failure
    errors: tuple = ()
    managers: ManagerRepository
    attempts: AttemptLedgerRepository
    blacklist: BlacklistRepository

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...
