"""
api/limiter.py -- The one slowapi Limiter for the whole app.

api/main.py attaches it to app.state and mounts SlowAPIMiddleware;
api/routes/auth.py decorates /register and /login with its limits.
Clients are keyed by remote address. Counters live in process memory, so
limits are per worker process and reset on restart.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
