"""
Tests for rateunlock/utils - logging, validation, signatures, rate limiting, alerting.
"""
import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rateunlock.utils import alerting
from rateunlock.utils.alerting import AlertType, send_alert
from rateunlock.utils.logging import (
    StructuredJsonFormatter,
    generate_correlation_id,
    mask_email,
    set_correlation_id,
)
from rateunlock.utils.metrics import Timer
from rateunlock.utils.rate_limiter import check_lead_rate_limit, check_rate_limit
from rateunlock.utils.validation import is_valid_email_format, normalize_phone, normalize_state_code
from rateunlock.utils.webhook_signatures import sign_payload, validate_hmac_sha256


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

class TestStructuredLogging:
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("rateunlock.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_single_line_json(self):
        set_correlation_id("cid-1")
        line = StructuredJsonFormatter().format(self._record(lead_id="abc"))

        entry = json.loads(line)
        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["correlation_id"] == "cid-1"
        assert entry["lead_id"] == "abc"

    def test_unknown_extras_are_ignored(self):
        entry = json.loads(StructuredJsonFormatter().format(self._record(password="hunter2")))
        assert "password" not in entry

    def test_correlation_ids_are_hex(self):
        cid = generate_correlation_id()
        assert len(cid) == 32
        int(cid, 16)

    def test_mask_email(self):
        assert mask_email("jane.doe@example.com") == "ja***@example.com"
        assert mask_email(None) == "unknown"
        assert mask_email("no-at-sign") == "unknown"


class TestTimer:
    def test_unstarted_timer_is_zero(self):
        assert Timer().elapsed_ms == 0

    def test_stop_returns_elapsed(self):
        timer = Timer().start()
        assert timer.stop() >= 0


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:
    @pytest.mark.parametrize("email", ["a@b.com", "jane.doe+rates@example.co.uk"])
    def test_valid_emails(self, email):
        assert is_valid_email_format(email)

    @pytest.mark.parametrize("email", ["", None, "not-an-email", "a@b", "@example.com"])
    def test_invalid_emails(self, email):
        assert not is_valid_email_format(email)

    def test_state_codes(self):
        assert normalize_state_code(" fl ") == "FL"
        assert normalize_state_code("DC") == "DC"
        assert normalize_state_code("ZZ") is None
        assert normalize_state_code(None) is None

    @pytest.mark.parametrize("raw", ["(512) 555-1234", "512.555.1234", "1-512-555-1234", "+1 512 555 1234"])
    def test_phone_normalization(self, raw):
        assert normalize_phone(raw) == "+15125551234"

    @pytest.mark.parametrize("raw", ["", "555-1234", "(012) 555-1234"])
    def test_unnormalizable_phones(self, raw):
        assert normalize_phone(raw) is None


# ---------------------------------------------------------------------------
# Webhook signatures
# ---------------------------------------------------------------------------

class TestWebhookSignatures:
    def test_signature_has_prefix_and_validates(self):
        body = b'{"event":"lead.new"}'
        signature = sign_payload("whsec_test", body)

        assert signature.startswith("sha256=")
        assert validate_hmac_sha256("whsec_test", signature, body)
        assert validate_hmac_sha256("whsec_test", signature.removeprefix("sha256="), body)

    def test_tampered_body_fails(self):
        signature = sign_payload("whsec_test", b"original")
        assert not validate_hmac_sha256("whsec_test", signature, b"tampered")

    def test_missing_secret_or_signature_fails(self):
        assert not validate_hmac_sha256("", "sha256=abc", b"x")
        assert not validate_hmac_sha256("whsec_test", "", b"x")


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

class TestRateLimiter:
    async def test_allows_under_limit(self, mock_redis):
        allowed, retry_after = await check_rate_limit("leads:ip:1.2.3.4", limit=5)
        assert allowed is True
        assert retry_after is None

    async def test_blocks_over_limit(self, mock_redis):
        mock_redis.pipeline.return_value.execute = AsyncMock(return_value=[0, 1, 6, True])

        allowed, retry_after = await check_rate_limit("leads:ip:1.2.3.4", limit=5)

        assert allowed is False
        assert retry_after == 60

    async def test_redis_failure_fails_open(self):
        with patch(
            "rateunlock.utils.redis_client.get_redis",
            new_callable=AsyncMock,
            side_effect=ConnectionError("redis down"),
        ):
            allowed, retry_after = await check_rate_limit("leads:ip:1.2.3.4", limit=5)
        assert allowed is True

    async def test_lead_limit_keys_by_ip(self, mock_redis):
        await check_lead_rate_limit("9.9.9.9")

        pipe = mock_redis.pipeline.return_value
        key = pipe.zcard.call_args.args[0]
        assert key == "rateunlock:ratelimit:leads:ip:9.9.9.9"


# ---------------------------------------------------------------------------
# Alerting
# ---------------------------------------------------------------------------

class TestAlerting:
    @pytest.fixture(autouse=True)
    def _clear_local_cooldowns(self):
        alerting._local_cooldowns.clear()
        yield
        alerting._local_cooldowns.clear()

    async def test_alert_is_logged(self, mock_redis, caplog):
        with caplog.at_level(logging.ERROR, logger="rateunlock.utils.alerting"):
            await send_alert(AlertType.LEAD_ROUTING_FAILED, "routing blew up", correlation_id="cid-9")

        assert "ALERT [lead_routing_failed]: routing blew up" in caplog.text
        assert "cid-9" in caplog.text

    async def test_cooldown_suppresses_repeat(self, mock_redis, caplog):
        mock_redis.set = AsyncMock(return_value=None)

        with caplog.at_level(logging.ERROR, logger="rateunlock.utils.alerting"):
            await send_alert(AlertType.LEAD_ROUTING_FAILED, "again")

        assert "again" not in caplog.text

    async def test_dead_webhook_alerts_use_longer_cooldown(self, mock_redis):
        await send_alert(AlertType.LENDER_WEBHOOK_DEAD, "lender unreachable")

        assert mock_redis.set.call_args.kwargs["ex"] == 900

    async def test_in_memory_fallback_when_redis_down(self, caplog):
        with (
            patch("rateunlock.utils.redis_client.get_redis", new_callable=AsyncMock,
                  side_effect=ConnectionError("redis down")),
            caplog.at_level(logging.ERROR, logger="rateunlock.utils.alerting"),
        ):
            await send_alert(AlertType.DELIVERY_WORKER_ERROR, "first")
            await send_alert(AlertType.DELIVERY_WORKER_ERROR, "second")

        assert "first" in caplog.text
        assert "second" not in caplog.text

    async def test_posts_to_alert_webhook(self, mock_redis, lender_webhook):
        settings = MagicMock(alert_webhook_url="https://hooks.example.com/alerts")
        with patch("rateunlock.config.get_settings", return_value=settings):
            await send_alert(AlertType.LEAD_PERSIST_FAILED, "db gone", extra={"lead_email": "a@b.com"})

        assert len(lender_webhook.requests) == 1
        body = json.loads(lender_webhook.requests[0].content)
        assert "lead_persist_failed" in body["content"]
        assert "lead_email: a@b.com" in body["content"]

    async def test_alert_webhook_failure_is_swallowed(self, mock_redis, lender_webhook):
        import httpx
        lender_webhook.error = httpx.ConnectError("refused")
        settings = MagicMock(alert_webhook_url="https://hooks.example.com/alerts")
        with patch("rateunlock.config.get_settings", return_value=settings):
            await send_alert(AlertType.LEAD_PERSIST_FAILED, "db gone")
