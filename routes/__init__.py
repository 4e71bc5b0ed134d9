from .health import health_bp
from .managers import managers_bp
from .user_phones import user_phones_bp
