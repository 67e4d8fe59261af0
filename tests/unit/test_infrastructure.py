"""Unit tests for the infrastructure layer: HTTP, Redis, email transports, record stores."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from config import EmailSettings
from errors import TransientStoreError
from infrastructure.cache import redis_client as redis_client_module
from infrastructure.cache.redis_client import create_redis_client
from infrastructure.email import content
from infrastructure.email.logging_provider import LoggingEmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.verification.memory_store import InMemoryVerificationStore
from infrastructure.verification.redis_store import RedisVerificationStore
from schemas.models.task import Task
from schemas.models.verification import VerificationRecord


# ── Helpers ───────────────────────────────────────────────────────────────────


def _task(**overrides) -> Task:
    base = dict(
        id="t1",
        title="Water tomatoes",
        type="watering",
        due_date=date(2025, 1, 10),
        garden_name="Backyard",
        plant_name="Tomato",
    )
    base.update(overrides)
    return Task(**base)


def _record(**overrides) -> VerificationRecord:
    base = dict(
        code="123456",
        issued_at=datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
        attempts=0,
    )
    base.update(overrides)
    return VerificationRecord(**base)


def _fake_redis(hgetall_returns=None):
    """Return a mock async Redis client with a transactional pipeline."""
    r = MagicMock()
    r.hgetall = AsyncMock(return_value=hgetall_returns or {})
    r.hincrby = AsyncMock(return_value=1)
    r.delete = AsyncMock(return_value=1)
    pipe = MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.execute = AsyncMock(return_value=[1, 3, True])
    r.pipeline.return_value = pipe
    return r, pipe


# ── HttpClient ────────────────────────────────────────────────────────────────


class TestHttpClient:
    async def test_post_delegates_to_httpx(self, mocker):
        client = HttpClient()
        fake_resp = MagicMock(status_code=200)
        mocker.patch.object(client._client, "post", return_value=fake_resp)
        resp = await client.post("http://example.com")
        assert resp.status_code == 200
        await client.aclose()

    async def test_post_propagates_exception(self, mocker):
        client = HttpClient()
        mocker.patch.object(client._client, "post", side_effect=Exception("timeout"))
        with pytest.raises(Exception, match="timeout"):
            await client.post("http://example.com")
        await client.aclose()

    async def test_context_manager(self):
        async with HttpClient() as client:
            assert client is not None


# ── create_redis_client ───────────────────────────────────────────────────────


class TestCreateRedisClient:
    async def test_returns_none_when_uri_missing(self):
        assert await create_redis_client(None) is None
        assert await create_redis_client("") is None

    async def test_returns_client_when_ping_succeeds(self, mocker):
        fake = MagicMock()
        fake.ping = AsyncMock(return_value=True)
        mocker.patch.object(redis_client_module.aioredis, "from_url", return_value=fake)
        assert await create_redis_client("redis://localhost:6379") is fake

    async def test_returns_none_when_ping_fails(self, mocker):
        fake = MagicMock()
        fake.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        mocker.patch.object(redis_client_module.aioredis, "from_url", return_value=fake)
        assert await create_redis_client("redis://localhost:6379") is None


# ── RedisVerificationStore ────────────────────────────────────────────────────


class TestRedisVerificationStore:
    async def test_get_returns_none_on_miss(self):
        r, _ = _fake_redis()
        store = RedisVerificationStore(r)
        assert await store.get("a@x.com") is None
        r.hgetall.assert_awaited_once_with("verification:a@x.com")

    async def test_get_parses_hash(self):
        r, _ = _fake_redis(
            hgetall_returns={
                "code": "654321",
                "issued_at": "2025-01-01T12:00:00+00:00",
                "attempts": "2",
            }
        )
        record = await RedisVerificationStore(r).get("a@x.com")
        assert record.code == "654321"
        assert record.attempts == 2
        assert record.issued_at == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    async def test_get_discards_bare_counter(self):
        r, _ = _fake_redis(hgetall_returns={"attempts": "1"})
        assert await RedisVerificationStore(r).get("a@x.com") is None
        r.delete.assert_awaited_once_with("verification:a@x.com")

    async def test_put_replaces_hash_and_sets_retention(self):
        r, pipe = _fake_redis()
        store = RedisVerificationStore(r, retention_seconds=1200)
        await store.put("a@x.com", _record())
        r.pipeline.assert_called_once_with(transaction=True)
        pipe.delete.assert_called_once_with("verification:a@x.com")
        _, kwargs = pipe.hset.call_args
        assert kwargs["mapping"]["code"] == "123456"
        assert kwargs["mapping"]["attempts"] == "0"
        pipe.expire.assert_called_once_with("verification:a@x.com", 1200)
        pipe.execute.assert_awaited_once()

    async def test_increment_uses_hincrby(self):
        r, _ = _fake_redis()
        r.hincrby.return_value = 2
        assert await RedisVerificationStore(r).increment_attempts("a@x.com") == 2
        r.hincrby.assert_awaited_once_with("verification:a@x.com", "attempts", 1)

    async def test_redis_error_becomes_transient(self):
        r, _ = _fake_redis()
        r.hgetall.side_effect = RedisConnectionError("down")
        with pytest.raises(TransientStoreError):
            await RedisVerificationStore(r).get("a@x.com")

    async def test_delete_error_becomes_transient(self):
        r, _ = _fake_redis()
        r.delete.side_effect = RedisConnectionError("down")
        with pytest.raises(TransientStoreError):
            await RedisVerificationStore(r).delete("a@x.com")


# ── InMemoryVerificationStore ─────────────────────────────────────────────────


class TestInMemoryVerificationStore:
    async def test_put_get_delete(self):
        store = InMemoryVerificationStore()
        await store.put("a@x.com", _record())
        assert (await store.get("a@x.com")).code == "123456"
        await store.delete("a@x.com")
        assert await store.get("a@x.com") is None
        assert len(store) == 0

    async def test_get_returns_copy(self):
        store = InMemoryVerificationStore()
        await store.put("a@x.com", _record())
        fetched = await store.get("a@x.com")
        fetched.attempts = 99
        assert (await store.get("a@x.com")).attempts == 0

    async def test_increment_attempts(self):
        store = InMemoryVerificationStore()
        await store.put("a@x.com", _record())
        assert await store.increment_attempts("a@x.com") == 1
        assert await store.increment_attempts("a@x.com") == 2

    async def test_delete_missing_is_noop(self):
        await InMemoryVerificationStore().delete("nobody@x.com")


# ── Email content ─────────────────────────────────────────────────────────────


class TestEmailContent:
    def test_known_and_unknown_icons(self):
        assert content.task_icon("watering") == "💧"
        assert content.task_icon("mulching") == content.DEFAULT_ICON
        assert content.task_icon(None) == content.DEFAULT_ICON

    def test_reminder_text_includes_context(self):
        text = content.reminder_text(_task())
        assert "Due: 2025-01-10" in text
        assert "Garden: Backyard" in text
        assert "Plant: Tomato" in text

    def test_reminder_text_omits_missing_plant(self):
        assert "Plant:" not in content.reminder_text(_task(plant_name=None))

    def test_verification_text_greets_by_name(self):
        assert "Hello Alice," in content.verification_text("Alice", "123456", 10)
        assert "Hello," in content.verification_text(None, "123456", 10)

    def test_garden_summary_covers_next_week_only(self):
        today = date(2025, 1, 5)
        tasks = [
            _task(id="later", title="Prune", due_date=date(2025, 1, 20)),
            _task(id="b", title="Water", due_date=date(2025, 1, 12)),
            _task(id="a", title="Plant", due_date=date(2025, 1, 6), garden_name="Front"),
            _task(id="done", due_date=date(2025, 1, 7), completed=True),
            _task(id="past", due_date=date(2025, 1, 4)),
        ]

        summary = content.build_garden_summary(tasks, today)

        assert [t.id for t in summary.upcoming_tasks] == ["a", "b"]
        assert summary.gardens == ["Backyard", "Front"]
        assert summary.week_of == today

    def test_garden_summary_text(self):
        summary = content.build_garden_summary([_task()], date(2025, 1, 5))
        text = content.summary_text(summary)
        assert "Upcoming tasks: 1" in text
        assert "2025-01-10  Water tomatoes (watering)" in text
        assert content.summary_subject(summary).endswith("2025-01-05")


# ── ZeptoMailProvider ─────────────────────────────────────────────────────────


class TestZeptoMailProvider:
    def _make(self, token="test-token"):
        settings = EmailSettings(
            zepto_api_token=token,
            zepto_from_email="noreply@garden-planner.app",
            zepto_from_name="Garden Planner",
        )
        http = MagicMock()
        # Patch template rendering so tests don't need real template files
        jinja = MagicMock()
        jinja.get_template.return_value.render.return_value = "<html>test</html>"
        provider = ZeptoMailProvider(
            settings=settings, http_client=http, app_url="https://garden-planner.app"
        )
        provider._jinja = jinja
        return provider, http

    async def test_send_verification_makes_post(self):
        provider, http = self._make()
        http.post = AsyncMock(return_value=MagicMock(status_code=200))
        result = await provider.send_verification_email(
            "user@example.com", "Alice", "123456"
        )
        assert result is True
        http.post.assert_awaited_once()
        _, kwargs = http.post.call_args
        assert "123456" in kwargs["json"]["textbody"]
        assert kwargs["json"]["to"][0]["email_address"]["name"] == "Alice"

    async def test_send_task_reminder_uses_task_subject(self):
        provider, http = self._make()
        http.post = AsyncMock(return_value=MagicMock(status_code=201))
        assert await provider.send_task_reminder("u@e.com", _task()) is True
        _, kwargs = http.post.call_args
        assert kwargs["json"]["subject"] == "🌱 Garden Reminder: Water tomatoes"
        provider._jinja.get_template.assert_called_with("task_reminder.html")

    async def test_send_garden_summary(self):
        provider, http = self._make()
        http.post = AsyncMock(return_value=MagicMock(status_code=200))
        summary = content.build_garden_summary([_task()], date(2025, 1, 5))
        assert await provider.send_garden_summary("u@e.com", summary) is True
        _, kwargs = http.post.call_args
        assert kwargs["json"]["subject"] == "🌱 Your Garden Summary - 2025-01-05"
        assert "Water tomatoes" in kwargs["json"]["textbody"]
        provider._jinja.get_template.assert_called_with("garden_summary.html")

    async def test_send_test_notification(self):
        provider, http = self._make()
        http.post = AsyncMock(return_value=MagicMock(status_code=202))
        assert await provider.send_test_notification("u@e.com") is True
        _, kwargs = http.post.call_args
        assert kwargs["json"]["subject"] == content.TEST_SUBJECT

    async def test_returns_false_when_token_empty(self):
        provider, http = self._make(token="")
        http.post = AsyncMock()
        assert (
            await provider.send_verification_email("u@e.com", None, "000000") is False
        )
        http.post.assert_not_awaited()

    async def test_returns_false_on_non_2xx(self):
        provider, http = self._make()
        resp = MagicMock(status_code=422, text="Unprocessable")
        http.post = AsyncMock(return_value=resp)
        assert (
            await provider.send_verification_email("u@e.com", None, "000000") is False
        )

    async def test_returns_false_on_exception(self):
        provider, http = self._make()
        http.post = AsyncMock(side_effect=Exception("timeout"))
        assert await provider.send_task_reminder("u@e.com", _task()) is False

    async def test_auth_header_prepends_prefix(self):
        provider, http = self._make(token="rawtoken")
        http.post = AsyncMock(return_value=MagicMock(status_code=200))
        await provider.send_test_notification("u@e.com")
        _, kwargs = http.post.call_args
        assert kwargs["headers"]["Authorization"] == "Zoho-enczapikey rawtoken"

    async def test_auth_header_not_double_prefixed(self):
        provider, http = self._make(token="Zoho-enczapikey alreadyprefixed")
        http.post = AsyncMock(return_value=MagicMock(status_code=201))
        await provider.send_verification_email("u@e.com", None, "654321")
        _, kwargs = http.post.call_args
        assert kwargs["headers"]["Authorization"].count("Zoho-enczapikey") == 1

    async def test_real_templates_render(self):
        settings = EmailSettings(zepto_api_token="t")
        http = MagicMock()
        http.post = AsyncMock(return_value=MagicMock(status_code=200))
        provider = ZeptoMailProvider(settings=settings, http_client=http)
        assert await provider.send_verification_email("u@e.com", "Al", "246810")
        assert await provider.send_task_reminder("u@e.com", _task())
        assert await provider.send_test_notification("u@e.com")
        html = http.post.call_args_list[0].kwargs["json"]["htmlbody"]
        assert "246810" in html
        summary = content.build_garden_summary([_task()], date(2025, 1, 5))
        assert await provider.send_garden_summary("u@e.com", summary)
        summary_html = http.post.call_args_list[-1].kwargs["json"]["htmlbody"]
        assert "Water tomatoes" in summary_html
        assert "Backyard" in summary_html


# ── LoggingEmailProvider ──────────────────────────────────────────────────────


class TestLoggingEmailProvider:
    async def test_all_sends_succeed(self):
        provider = LoggingEmailProvider()
        assert await provider.send_verification_email("u@e.com", None, "123456")
        assert await provider.send_task_reminder("u@e.com", _task())
        assert await provider.send_garden_summary(
            "u@e.com", content.build_garden_summary([_task()], date(2025, 1, 5))
        )
        assert await provider.send_test_notification("u@e.com")

    async def test_code_hidden_unless_enabled(self, mocker):
        from infrastructure.email import logging_provider

        spy = mocker.patch.object(logging_provider, "log")
        await LoggingEmailProvider().send_verification_email("u@e.com", None, "123456")
        assert spy.info.call_args.kwargs["demo"] == "hidden"

        await LoggingEmailProvider(log_codes=True).send_verification_email(
            "u@e.com", None, "123456"
        )
        assert spy.info.call_args.kwargs["demo"] == "123456"
