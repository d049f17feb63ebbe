"""
Tests for dolo/utils/logging.py - JSON formatter, secret masking, correlation ids.
"""
import json
import logging
import sys

import pytest

from dolo.utils.logging import (
    REDACTED,
    StructuredJsonFormatter,
    configure_structured_logging,
    correlation_id_ctx,
    redact_secrets,
    resolve_correlation_id,
)


def _record(msg, *args, exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord("dolo.api.webhooks", logging.ERROR, __file__, 1, msg, args, exc_info)
    record.created = 1_700_000_000.25
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def _format(record) -> dict:
    return json.loads(StructuredJsonFormatter().format(record))


@pytest.fixture
def correlation_id():
    token = correlation_id_ctx.set("req-abc")
    yield "req-abc"
    correlation_id_ctx.reset(token)


class TestStructuredJsonFormatter:
    def test_core_fields(self, correlation_id):
        line = _format(_record("Rate limit exceeded for %s", "stripe:1.2.3.4"))
        assert line["timestamp"] == "2023-11-14T22:13:20.250000Z"
        assert line["level"] == "ERROR"
        assert line["module"] == "dolo.api.webhooks"
        assert line["correlation_id"] == "req-abc"
        assert line["message"] == "Rate limit exceeded for stripe:1.2.3.4"

    def test_structured_extras_copied(self):
        line = _format(_record(
            "failed", component="Webhook:stripe", action="verify",
            metadata={"payload_hash": "ab12"}, unrelated="skip",
        ))
        assert line["component"] == "Webhook:stripe"
        assert line["action"] == "verify"
        assert line["metadata"] == {"payload_hash": "ab12"}
        assert "unrelated" not in line

    def test_masks_keys_in_message(self):
        line = _format(_record("Stripe auth failed for sk_live_51Habc123XYZ"))
        assert line["message"] == f"Stripe auth failed for {REDACTED}"

    def test_masks_keys_in_extras_and_exceptions(self):
        try:
            raise RuntimeError("Authorization: Bearer SG.abc-123.def_456")
        except RuntimeError:
            exc_info = sys.exc_info()
        line = _format(_record("send failed", exc_info=exc_info, metadata={"secret": "whsec_abc123"}))
        assert "SG.abc-123.def_456" not in line["exception"]
        assert REDACTED in line["exception"]
        assert line["metadata"] == {"secret": REDACTED}


class TestRedactSecrets:
    @pytest.mark.parametrize("text", [
        "sk_test_4eC39HqLyjWDarjtT1zdp7dc",
        "rk_live_abcDEF123",
        "whsec_test_secret",
        "SG.key-id.key_secret",
    ])
    def test_masks_credentials(self, text):
        assert redact_secrets(f"key={text}!") == f"key={REDACTED}!"

    def test_leaves_ids_alone(self):
        text = "cus_123 paid via cs_test_a1b2 (evt_9)"
        assert redact_secrets(text) == text


class TestResolveCorrelationId:
    def test_keeps_safe_value(self):
        assert resolve_correlation_id("abc-123_DEF") == "abc-123_DEF"

    @pytest.mark.parametrize("value", [None, "", "a" * 65, "abc\r\nX-Injected: 1", "has space"])
    def test_replaces_unsafe_value(self, value):
        cid = resolve_correlation_id(value)
        assert cid != value
        assert len(cid) == 32


class TestConfigureStructuredLogging:
    def test_single_json_handler_and_quiet_sdks(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_structured_logging("debug")
            configure_structured_logging("debug")
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredJsonFormatter)
            assert root.level == logging.DEBUG
            assert logging.getLogger("stripe").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
