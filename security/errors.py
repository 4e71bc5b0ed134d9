class LoginError(Exception):
    """Base for every rejection the login gate can raise."""


class Blocked(LoginError):
    """Source IP is blacklisted. Reported to clients like InvalidCredentials."""

    def __init__(self, ip: str):
        super().__init__(f"{ip} is blacklisted")
        self.ip = ip


class InvalidCredentials(LoginError):
    """Unknown login name or wrong password."""

    def __init__(self, reason: str, manager_id=None, fail_count=None, blacklisted_now=False):
        super().__init__(reason)
        self.reason = reason  # UNKNOWN_LOGIN or BAD_PASSWORD
        self.manager_id = manager_id
        self.fail_count = fail_count
        self.blacklisted_now = blacklisted_now


class StoreUnavailable(LoginError):
    """Persistence failed mid-attempt; nothing from the attempt was kept."""
