from __future__ import annotations

import logging

from vacancy_outreach.core.config import Settings
from vacancy_outreach.core.telemetry import (
    SERVICE_LOGGER,
    TELETHON_LOGGER,
    configure_logging,
    parse_otlp_headers,
    setup_telemetry,
    shutdown_telemetry,
)


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


def test_debug_flag_raises_service_and_telethon_verbosity() -> None:
    configure_logging(_settings(telegram_debug=True))
    assert logging.getLogger(SERVICE_LOGGER).level == logging.DEBUG
    assert logging.getLogger(TELETHON_LOGGER).level == logging.DEBUG

    configure_logging(_settings())
    assert logging.getLogger(SERVICE_LOGGER).level == logging.INFO
    assert logging.getLogger(TELETHON_LOGGER).level == logging.WARNING


def test_log_records_carry_empty_trace_ids_outside_spans() -> None:
    configure_logging(_settings())

    record = logging.getLogRecordFactory()("vacancy_outreach", logging.INFO, __file__, 1, "hello", (), None)

    assert record.trace_id == "0" * 32
    assert record.span_id == "0" * 16


def test_disabled_telemetry_is_a_no_op() -> None:
    runtime = setup_telemetry(_settings(otel_enabled=False))

    assert runtime.enabled is False
    shutdown_telemetry(runtime)


def test_parse_otlp_headers() -> None:
    assert parse_otlp_headers("authorization=Bearer abc, x-team = jobs ,broken,=empty") == {
        "authorization": "Bearer abc",
        "x-team": "jobs",
    }
    assert parse_otlp_headers(None) == {}
