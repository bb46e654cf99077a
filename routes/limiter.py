from slowapi import Limiter
from slowapi.util import get_remote_address

from config import RATE_LIMIT_ENABLED

# Shared limiter for route decorators; app.state.limiter points at the same instance
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)
