"""Rate limiting configuration."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings

# Applied per client address to every route without an explicit limit.
limiter = Limiter(key_func=get_remote_address, default_limits=[get_settings().rate_limit])
