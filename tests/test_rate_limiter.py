from __future__ import annotations

import pytest
import redis

from src.main.textbook_ocr.services import rate_limiter
from src.main.textbook_ocr.services.rate_limiter import RateLimiter


class Clock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock(monkeypatch):
    fake = Clock()
    monkeypatch.setattr(rate_limiter.time, "monotonic", fake)
    return fake


def test_blocks_after_limit_within_window(clock):
    limiter = RateLimiter(limit=2)

    assert [limiter.hit("login", "10.0.0.1") for _ in range(3)] == [True, True, False]


def test_window_slides_open_again(clock):
    limiter = RateLimiter(limit=1, window_seconds=60)
    assert limiter.hit("ocr", "10.0.0.1") is True
    assert limiter.hit("ocr", "10.0.0.1") is False

    clock.now += 61

    assert limiter.hit("ocr", "10.0.0.1") is True


def test_scopes_and_clients_are_counted_separately(clock):
    limiter = RateLimiter(limit=1)

    assert limiter.hit("login", "10.0.0.1") is True
    assert limiter.hit("ocr", "10.0.0.1") is True
    assert limiter.hit("login", "10.0.0.2") is True
    assert limiter.hit("login", "10.0.0.1") is False


def test_idle_clients_are_forgotten(clock):
    limiter = RateLimiter(limit=5, window_seconds=60)
    for index in range(50):
        limiter.hit("login", f"10.0.0.{index}")
    assert limiter.tracked_clients == 50

    clock.now += 61
    limiter.hit("login", "10.0.1.1")

    assert limiter.tracked_clients == 1


def test_non_positive_limit_disables_limiting(clock):
    limiter = RateLimiter(limit=0)

    assert all(limiter.hit("login", "10.0.0.1") for _ in range(10))
    assert limiter.tracked_clients == 0


def test_from_config_uses_memory_without_redis_url():
    limiter = RateLimiter.from_config({"RATE_LIMIT_PER_MINUTE": 7, "REDIS_URL": ""})

    assert limiter.limit == 7
    assert limiter._redis_client is None


def test_from_config_falls_back_when_redis_is_down(monkeypatch):
    class DownRedis:
        def ping(self):
            raise redis.ConnectionError("refused")

    monkeypatch.setattr(rate_limiter.redis, "from_url", lambda url, **kwargs: DownRedis())

    limiter = RateLimiter.from_config({"RATE_LIMIT_PER_MINUTE": 3, "REDIS_URL": "redis://localhost:6379/0"})

    assert limiter._redis_client is None
    assert limiter.hit("login", "10.0.0.1") is True
