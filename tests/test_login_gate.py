"""Tests for security.login_gate — blacklist, attempt ledger and token issuance."""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from models import db
from models.ip_blacklist import IpBlacklist
from models.login_attempt import LoginAttempt
from repositories import SqlLoginStore
from security.errors import Blocked, InvalidCredentials, StoreUnavailable
from security.login_gate import LoginGate, REASON_BAD_PASSWORD, REASON_UNKNOWN_LOGIN
from security.tokens import TokenIssuer

from tests.conftest import MANAGER_LOGIN, MANAGER_PASSWORD

IP = "1.2.3.4"
DEVICE = "dev1"
T0 = datetime(2026, 10, 19, 9, 0, 0)


class Clock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def ctx(app, manager_id):
    with app.app_context():
        yield


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def tokens():
    return TokenIssuer("gate-test-secret-with-enough-length")


@pytest.fixture
def make_gate(ctx, clock, tokens):
    def _make(store=None, **kwargs):
        return LoginGate(store or SqlLoginStore(db.session), tokens, clock=clock, **kwargs)
    return _make


def _attempt(gate, login=MANAGER_LOGIN, password=MANAGER_PASSWORD, device=DEVICE, ip=IP, timestamp=None):
    return gate.attempt_login(login, password, device, ip, timestamp)


def _record(ip=IP, device=DEVICE):
    db.session.expire_all()
    return LoginAttempt.query.filter_by(ip=ip, device=device).first()


def _blacklisted_ips():
    db.session.expire_all()
    return sorted(row.ip for row in IpBlacklist.query.all())


class TestSuccessfulLogin:
    def test_returns_verifiable_token(self, make_gate, tokens, manager_id):
        token = _attempt(make_gate())
        assert tokens.verify(token) == manager_id

    def test_creates_ledger_record_with_zero_failures(self, make_gate, manager_id):
        stamp = datetime(2026, 10, 19, 8, 15)
        _attempt(make_gate(), timestamp=stamp)
        row = _record()
        assert row.fail_count == 0
        assert row.manager_id == manager_id
        assert row.last_attempt_at == stamp

    def test_missing_timestamp_uses_clock(self, make_gate):
        _attempt(make_gate())
        assert _record().last_attempt_at == T0

    def test_success_resets_failures(self, make_gate):
        gate = make_gate()
        for _ in range(2):
            with pytest.raises(InvalidCredentials):
                _attempt(gate, password="wrong")
        assert _record().fail_count == 2

        _attempt(gate)
        assert _record().fail_count == 0

    def test_counter_does_not_carry_over_after_reset(self, make_gate):
        gate = make_gate()
        for _ in range(2):
            with pytest.raises(InvalidCredentials):
                _attempt(gate, password="wrong")
        _attempt(gate)

        for expected in (1, 2):
            with pytest.raises(InvalidCredentials) as excinfo:
                _attempt(gate, password="wrong")
            assert excinfo.value.fail_count == expected
            assert _blacklisted_ips() == []

        with pytest.raises(InvalidCredentials) as excinfo:
            _attempt(gate, password="wrong")
        assert excinfo.value.blacklisted_now
        assert _blacklisted_ips() == [IP]

    def test_password_verified_before_ledger_write(self, make_gate, monkeypatch):
        gate = make_gate()
        calls = []
        real_upsert = gate.store.attempts.upsert

        def _verify(plain, hashed):
            calls.append("verify")
            return True

        def _upsert(*args):
            calls.append("upsert")
            return real_upsert(*args)

        monkeypatch.setattr("security.login_gate.verify_password", _verify)
        monkeypatch.setattr(gate.store.attempts, "upsert", _upsert)
        _attempt(gate)

        assert calls == ["verify", "upsert"]


class TestWrongPassword:
    def test_blacklists_on_third_failure_not_before(self, make_gate):
        gate = make_gate()
        for expected in (1, 2):
            with pytest.raises(InvalidCredentials) as excinfo:
                _attempt(gate, password="wrong")
            assert excinfo.value.reason == REASON_BAD_PASSWORD
            assert excinfo.value.fail_count == expected
            assert not excinfo.value.blacklisted_now
            assert _blacklisted_ips() == []

        with pytest.raises(InvalidCredentials) as excinfo:
            _attempt(gate, password="wrong")
        assert excinfo.value.fail_count == 3
        assert excinfo.value.blacklisted_now
        assert _blacklisted_ips() == [IP]

    def test_correct_password_after_blacklisting_is_blocked(self, make_gate):
        gate = make_gate()
        for _ in range(3):
            with pytest.raises(InvalidCredentials):
                _attempt(gate, password="wrong")

        with pytest.raises(Blocked):
            _attempt(gate)

    def test_failures_are_tracked_per_device(self, make_gate):
        gate = make_gate()
        for device in ("dev1", "dev2"):
            for _ in range(2):
                with pytest.raises(InvalidCredentials):
                    _attempt(gate, password="wrong", device=device)

        assert _record(device="dev1").fail_count == 2
        assert _record(device="dev2").fail_count == 2
        assert _blacklisted_ips() == []

    def test_configurable_threshold(self, make_gate):
        gate = make_gate(max_attempts=5)
        for _ in range(4):
            with pytest.raises(InvalidCredentials):
                _attempt(gate, password="wrong")
        assert _blacklisted_ips() == []

        with pytest.raises(InvalidCredentials):
            _attempt(gate, password="wrong")
        assert _blacklisted_ips() == [IP]

    def test_zero_threshold_rejected(self, make_gate):
        with pytest.raises(ValueError):
            make_gate(max_attempts=0)


class TestUnknownLogin:
    def test_unknown_login_blacklists_ip(self, make_gate):
        with pytest.raises(InvalidCredentials) as excinfo:
            _attempt(make_gate(), login="mallory")
        assert excinfo.value.reason == REASON_UNKNOWN_LOGIN
        assert excinfo.value.blacklisted_now
        assert _blacklisted_ips() == [IP]

    def test_unknown_login_creates_no_ledger_record(self, make_gate):
        with pytest.raises(InvalidCredentials):
            _attempt(make_gate(), login="mallory")
        assert _record() is None

    def test_valid_login_from_same_ip_is_then_blocked(self, make_gate):
        gate = make_gate()
        with pytest.raises(InvalidCredentials):
            _attempt(gate, login="mallory")
        with pytest.raises(Blocked):
            _attempt(gate)

    def test_repeated_unknown_logins_keep_one_entry(self, make_gate):
        gate = make_gate()
        with pytest.raises(InvalidCredentials):
            _attempt(gate, login="mallory")
        for name in ("eve", "trudy", "mallory"):
            with pytest.raises(Blocked):
                _attempt(gate, login=name)
        assert IpBlacklist.query.filter_by(ip=IP).count() == 1

    def test_blacklisting_unknown_login_can_be_disabled(self, make_gate):
        gate = make_gate(blacklist_unknown_login=False)
        with pytest.raises(InvalidCredentials) as excinfo:
            _attempt(gate, login="mallory")
        assert not excinfo.value.blacklisted_now
        assert _blacklisted_ips() == []
        assert _attempt(gate)


class TestBlockedIp:
    def test_blocked_ip_performs_no_ledger_mutation(self, make_gate):
        gate = make_gate()
        _attempt(gate, timestamp=datetime(2026, 10, 19, 7, 0))
        SqlLoginStore(db.session).blacklist.add(IP, T0)
        db.session.commit()

        for password in (MANAGER_PASSWORD, "wrong"):
            with pytest.raises(Blocked):
                _attempt(gate, password=password, timestamp=datetime(2026, 10, 19, 8, 0))

        row = _record()
        assert row.fail_count == 0
        assert row.last_attempt_at == datetime(2026, 10, 19, 7, 0)

    def test_other_ips_unaffected(self, make_gate):
        gate = make_gate()
        with pytest.raises(InvalidCredentials):
            _attempt(gate, login="mallory", ip="6.6.6.6")
        assert _attempt(gate, ip="7.7.7.7")


class TestBlacklistExpiry:
    def test_permanent_by_default(self, make_gate, clock):
        gate = make_gate()
        with pytest.raises(InvalidCredentials):
            _attempt(gate, login="mallory")
        clock.advance(365 * 24 * 3600)
        with pytest.raises(Blocked):
            _attempt(gate)

    def test_entry_expires_after_ttl(self, make_gate, clock):
        gate = make_gate(blacklist_ttl_seconds=600)
        with pytest.raises(InvalidCredentials):
            _attempt(gate, login="mallory")

        clock.advance(599)
        with pytest.raises(Blocked):
            _attempt(gate)

        clock.advance(1)
        assert _attempt(gate)

    def test_expired_entry_is_rearmed(self, make_gate, clock):
        gate = make_gate(blacklist_ttl_seconds=60)
        with pytest.raises(InvalidCredentials):
            _attempt(gate, login="mallory")
        clock.advance(120)

        with pytest.raises(InvalidCredentials) as excinfo:
            _attempt(gate, login="mallory")
        assert excinfo.value.blacklisted_now
        assert IpBlacklist.query.filter_by(ip=IP).count() == 1
        with pytest.raises(Blocked):
            _attempt(gate)


class _FailingCommitStore(SqlLoginStore):
    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


class TestStoreFailures:
    def test_failed_commit_keeps_no_state(self, make_gate):
        gate = make_gate()
        for _ in range(2):
            with pytest.raises(InvalidCredentials):
                _attempt(gate, password="wrong")

        failing = make_gate(store=_FailingCommitStore(db.session))
        with pytest.raises(StoreUnavailable) as excinfo:
            _attempt(failing, password="wrong")
        assert isinstance(excinfo.value.__cause__, OperationalError)

        assert _record().fail_count == 2
        assert _blacklisted_ips() == []

    def test_unknown_login_blacklist_rolled_back(self, make_gate):
        failing = make_gate(store=_FailingCommitStore(db.session))
        with pytest.raises(StoreUnavailable):
            _attempt(failing, login="mallory")
        assert _blacklisted_ips() == []

    def test_failure_mid_attempt_rolls_back_increment(self, make_gate, monkeypatch):
        gate = make_gate()
        for _ in range(2):
            with pytest.raises(InvalidCredentials):
                _attempt(gate, password="wrong")

        def _broken_add(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        monkeypatch.setattr(gate.store.blacklist, "add", _broken_add)
        with pytest.raises(StoreUnavailable):
            _attempt(gate, password="wrong")

        assert _record().fail_count == 2
        assert _blacklisted_ips() == []

    def test_read_failure_maps_to_store_unavailable(self, make_gate, monkeypatch):
        gate = make_gate()

        def _broken_contains(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        monkeypatch.setattr(gate.store.blacklist, "contains", _broken_contains)
        with pytest.raises(StoreUnavailable):
            _attempt(gate)
