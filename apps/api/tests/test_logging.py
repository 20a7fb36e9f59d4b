import json
import logging

from loguru import logger

from vauntico_api.core.logging import configure_logging


def _lines(capsys) -> list[dict]:
    return [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]


def test_loguru_records_are_emitted_as_json(capsys):
    configure_logging(service_name="vauntico-fulfillment", environment="test", version="0.1.0")

    logger.bind(request_id="req-1").info("Fulfillment request received")

    [entry] = _lines(capsys)
    assert entry["message"] == "Fulfillment request received"
    assert entry["level"] == "info"
    assert entry["service"] == "vauntico-fulfillment"
    assert entry["environment"] == "test"
    assert entry["request_id"] == "req-1"
    assert "trace_id" not in entry


def test_stdlib_records_are_forwarded_with_exception_summary(capsys):
    configure_logging(service_name="vauntico-fulfillment", environment="test", version="0.1.0")

    try:
        raise RuntimeError("boom {braces}")
    except RuntimeError:
        logging.getLogger("sqlalchemy.engine").error("query failed", exc_info=True)

    [entry] = _lines(capsys)
    assert entry["message"] == "query failed"
    assert entry["logger"] == "sqlalchemy.engine"
    assert entry["exception"] == {"type": "RuntimeError", "message": "boom {braces}"}
