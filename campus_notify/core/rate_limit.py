"""
Shared slowapi limiter. Routes decorate with @limiter.limit(...) and the
application registers the same instance on app.state.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
