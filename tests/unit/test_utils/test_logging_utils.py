"""Tests for structured logging helpers."""

import logging

import pytest

from agent_panel.utils.logging import (
    correlation_context,
    get_correlation_id,
    get_structured_logger,
    mask_phone,
    mask_sensitive_data,
    mask_user_id,
)


@pytest.mark.unit
def test_mask_sensitive_data_hides_pii():
    text = "agent sunita@example.com phone +91 98765 43210 aadhaar 1234 5678 9012"
    masked = mask_sensitive_data(text)
    assert "sunita@example.com" not in masked
    assert "98765" not in masked
    assert "1234 5678 9012" not in masked
    assert "[REDACTED_EMAIL]" in masked
    assert "[REDACTED_AADHAAR]" in masked


@pytest.mark.unit
def test_mask_phone_keeps_last_four_digits():
    assert mask_phone("+919876543210") == "******3210"
    assert mask_phone(None) is None


@pytest.mark.unit
def test_mask_user_id_shortens_long_ids():
    masked = mask_user_id("7f3a9c2e-1b4d-4c8e-9f00-123456789abc")
    assert masked.startswith("7f3a...")
    assert mask_user_id("short") == "short"


@pytest.mark.unit
def test_correlation_context_restores_previous_id():
    assert get_correlation_id() is None
    with correlation_context("req_outer"):
        with correlation_context() as inner:
            assert inner.startswith("req_")
            assert get_correlation_id() == inner
        assert get_correlation_id() == "req_outer"
    assert get_correlation_id() is None


@pytest.mark.unit
def test_structured_logger_attaches_fields(caplog):
    logger = get_structured_logger("agent_panel.test")
    with caplog.at_level(logging.INFO, logger="agent_panel.test"):
        with correlation_context("req_abc"):
            logger.info("Profile saved", user_id="u1")
    record = caplog.records[-1]
    assert record.getMessage() == "Profile saved"
    assert record.user_id == "u1"
    assert record.correlation_id == "req_abc"


@pytest.mark.unit
def test_structured_logger_masks_error_text(caplog):
    logger = get_structured_logger("agent_panel.test")
    with caplog.at_level(logging.WARNING, logger="agent_panel.test"):
        logger.warning(
            "Insert failed",
            error='duplicate key (email)=(sunita@example.com), aadhaar 1234 5678 9012',
            phone="******3210",
        )
    record = caplog.records[-1]
    assert "sunita@example.com" not in record.error
    assert "1234 5678 9012" not in record.error
    assert "[REDACTED_EMAIL]" in record.error
    assert record.phone == "******3210"
