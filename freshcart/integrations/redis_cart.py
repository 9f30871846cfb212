"""Redis-backed cart persistence with TTL, per-session lock and memory fallback."""
from __future__ import annotations

import json
import logging
import os
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

import redis

from freshcart.core.constants import (
    CART_EXPIRY_SECONDS,
    CART_LOCK_TTL_SECONDS,
    CART_LOCK_WAIT_SECONDS,
)
from freshcart.core.exceptions import CartPersistenceError
from freshcart.domain.cart import CartLine

logger = logging.getLogger(__name__)


class RedisCartStorage:
    """Cart storage persisted in Redis with per-session lock and 24h TTL.

    Without ``REDIS_URL`` (or when Redis is unreachable) carts live in process
    memory with the same expiry. With ``fallback_to_memory=False`` a failed
    Redis write raises ``CartPersistenceError`` instead, so callers can roll
    back their local state.
    """

    CART_EXPIRY_SECONDS = CART_EXPIRY_SECONDS
    LOCK_TTL_SECONDS = CART_LOCK_TTL_SECONDS
    LOCK_WAIT_SECONDS = CART_LOCK_WAIT_SECONDS

    def __init__(self, redis_url: str | None = None, *, fallback_to_memory: bool = True):
        self._redis_url = redis_url or os.getenv("REDIS_URL")
        self._fallback_to_memory = fallback_to_memory
        self._client = self._init_client()
        self._memory_carts: dict[str, dict[str, Any]] = {}
        self._memory_last_access: dict[str, float] = {}

    @property
    def uses_redis(self) -> bool:
        return self._client is not None

    def _switch_to_memory_fallback(self, reason: Exception | str) -> None:
        logger.warning("Redis cart fallback to memory mode: %s", reason)
        self._client = None

    def _init_client(self):
        if not self._redis_url:
            logger.info("REDIS_URL is not set; cart uses in-memory storage")
            return None

        try:
            client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
            logger.info("Redis cart storage enabled")
            return client
        except redis.RedisError as exc:
            if not self._fallback_to_memory:
                raise CartPersistenceError(f"Redis cart storage unavailable: {exc}") from exc
            logger.warning("Redis cart init failed, fallback to in-memory: %s", exc)
            return None

    @staticmethod
    def _cart_key(session_key: str) -> str:
        return f"cart:{session_key}"

    @staticmethod
    def _lock_key(session_key: str) -> str:
        return f"cart_lock:{session_key}"

    @staticmethod
    def _empty_payload() -> dict[str, Any]:
        return {"items": [], "updated_at": int(time.time())}

    # ------------------------------------------------------------------
    # memory mode
    # ------------------------------------------------------------------

    def _cleanup_memory_expired(self) -> None:
        now = time.time()
        expired = [
            session_key
            for session_key, last_access in self._memory_last_access.items()
            if now - last_access > self.CART_EXPIRY_SECONDS
        ]
        for session_key in expired:
            self._memory_carts.pop(session_key, None)
            self._memory_last_access.pop(session_key, None)
            logger.debug("Expired cart for session %s", session_key)

    def _memory_touch(self, session_key: str) -> None:
        self._memory_last_access[session_key] = time.time()

    def _memory_load(self, session_key: str) -> dict[str, Any]:
        self._cleanup_memory_expired()
        payload = self._memory_carts.get(session_key)
        if not payload:
            return self._empty_payload()
        self._memory_touch(session_key)
        return json.loads(json.dumps(payload))

    def _memory_save(self, session_key: str, payload: dict[str, Any]) -> None:
        if not payload.get("items"):
            self._memory_carts.pop(session_key, None)
            self._memory_last_access.pop(session_key, None)
            return
        payload["updated_at"] = int(time.time())
        self._memory_carts[session_key] = json.loads(json.dumps(payload))
        self._memory_touch(session_key)

    # ------------------------------------------------------------------
    # payload I/O
    # ------------------------------------------------------------------

    def _write_failed(self, session_key: str, payload: dict[str, Any], exc: Exception) -> None:
        if not self._fallback_to_memory:
            raise CartPersistenceError(f"Failed to save cart: {exc}") from exc
        self._switch_to_memory_fallback(exc)
        self._memory_save(session_key, payload)

    def _load_payload(self, session_key: str) -> dict[str, Any]:
        if not self._client:
            return self._memory_load(session_key)

        try:
            raw = self._client.get(self._cart_key(session_key))
        except redis.RedisError as exc:
            if not self._fallback_to_memory:
                raise CartPersistenceError(f"Failed to load cart: {exc}") from exc
            self._switch_to_memory_fallback(exc)
            return self._memory_load(session_key)
        if not raw:
            return self._empty_payload()
        try:
            payload = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable cart payload for session %s", session_key)
            return self._empty_payload()
        # older carts were stored as a bare list of lines
        if isinstance(payload, list):
            payload = {"items": payload}
        if not isinstance(payload, dict):
            return self._empty_payload()
        if not isinstance(payload.get("items"), list):
            payload["items"] = []
        return payload

    def _save_payload(self, session_key: str, payload: dict[str, Any]) -> None:
        payload["updated_at"] = int(time.time())
        if not self._client:
            self._memory_save(session_key, payload)
            return

        try:
            if not payload.get("items"):
                self._client.delete(self._cart_key(session_key))
            else:
                serialized = json.dumps(payload, ensure_ascii=False)
                self._client.setex(self._cart_key(session_key), self.CART_EXPIRY_SECONDS, serialized)
        except redis.RedisError as exc:
            self._write_failed(session_key, payload, exc)

    @contextmanager
    def _session_lock(self, session_key: str) -> Iterator[None]:
        if not self._client:
            yield
            return

        lock_key = self._lock_key(session_key)
        token = str(uuid.uuid4())
        deadline = time.monotonic() + self.LOCK_WAIT_SECONDS
        acquired = False

        while time.monotonic() < deadline:
            try:
                acquired = bool(
                    self._client.set(lock_key, token, nx=True, ex=self.LOCK_TTL_SECONDS)
                )
            except redis.RedisError as exc:
                logger.warning("Cart lock unavailable for session %s: %s", session_key, exc)
                break
            if acquired:
                break
            time.sleep(0.05)

        if not acquired:
            logger.warning("Cart lock timeout for session %s; proceeding without lock", session_key)
            yield
            return

        try:
            yield
        finally:
            unlock_lua = (
                "if redis.call('get', KEYS[1]) == ARGV[1] "
                "then return redis.call('del', KEYS[1]) else return 0 end"
            )
            try:
                self._client.eval(unlock_lua, 1, lock_key, token)
            except redis.RedisError as exc:
                logger.warning("Failed to release cart lock for session %s: %s", session_key, exc)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    def load_lines(self, session_key: str) -> list[CartLine]:
        payload = self._load_payload(session_key)
        lines: list[CartLine] = []
        for raw in payload.get("items", []):
            if not isinstance(raw, dict):
                continue
            try:
                line = CartLine.from_dict(raw)
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable cart line for session %s: %s", session_key, exc)
                continue
            if line.product_id and line.quantity > 0:
                lines.append(line)
        return lines

    def save_lines(self, session_key: str, lines: list[CartLine]) -> None:
        with self._session_lock(session_key):
            payload = {"items": [line.to_dict() for line in lines]}
            self._save_payload(session_key, payload)

