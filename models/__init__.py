from .db import db
from .manager import Manager
from .audit_log import AuditLog
from .login_attempt import LoginAttempt
from .ip_blacklist import IpBlacklist
from .user_phone import UserPhone
