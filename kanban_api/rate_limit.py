from __future__ import annotations

import math
import time
from threading import Lock

import redis

from kanban_api.config import settings
from kanban_api.log import logger

_REDIS_PREFIX = "rl:"


class RateLimiter:
  """
  Fixed-window limiter for the auth endpoints, keyed like "auth:login:ip:<addr>".

  Windows live in process memory unless REDIS_URL is set, in which case they
  are shared through redis INCR/EXPIRE so several workers agree. A redis
  outage degrades to per-process windows rather than failing the request.
  """

  def __init__(self, redis_url: str | None = None) -> None:
    self._lock = Lock()
    # key -> (window opened at, attempts in window)
    self._windows: dict[str, tuple[float, int]] = {}
    self._redis = redis.Redis.from_url(redis_url, decode_responses=True) if redis_url else None

  def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    """
    Returns (allowed, retry_after_seconds).
    """
    if self._redis is not None:
      try:
        return self._hit_redis(key, limit=limit, window_seconds=window_seconds)
      except redis.RedisError:
        logger.warning("rate limiter: redis unavailable, counting %s in memory", key)
    return self._hit_memory(key, limit=limit, window_seconds=window_seconds)

  def _hit_memory(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    now = time.monotonic()
    with self._lock:
      opened, attempts = self._windows.get(key, (now, 0))
      if now - opened >= window_seconds:
        opened, attempts = now, 0
      if attempts >= limit:
        return False, max(1, math.ceil(opened + window_seconds - now))
      self._windows[key] = (opened, attempts + 1)
    return True, 0

  def _hit_redis(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    rk = _REDIS_PREFIX + key
    pipe = self._redis.pipeline()
    pipe.incr(rk, 1)
    pipe.ttl(rk)
    count, ttl = pipe.execute()
    if int(count) == 1 or int(ttl) < 0:
      self._redis.expire(rk, int(window_seconds))
      ttl = int(window_seconds)
    if int(count) > int(limit):
      return False, max(1, int(ttl))
    return True, 0

  def reset_prefix(self, prefix: str) -> None:
    """Forget every window whose key starts with `prefix`, in memory and in redis."""
    with self._lock:
      self._windows = {k: w for k, w in self._windows.items() if not k.startswith(prefix)}
    if self._redis is not None:
      try:
        stale = list(self._redis.scan_iter(match=f"{_REDIS_PREFIX}{prefix}*"))
        if stale:
          self._redis.delete(*stale)
      except redis.RedisError:
        logger.warning("rate limiter: redis unavailable, %s* only reset in memory", prefix)


limiter = RateLimiter(settings.redis_url)
