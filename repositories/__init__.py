from .base import (
    AttemptLedgerRepository,
    BlacklistRepository,
    LoginStore,
    ManagerRepository,
)
from .sql import SqlLoginStore
