import json
import logging

from peakconditions.config.logging_config import setup_logging


def test_setup_logging_emits_json(monkeypatch, capsys) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    monkeypatch.setattr("peakconditions.config.logging_config._CONFIGURED", False)
    try:
        setup_logging(service_name="peak-test", level="info")
        logging.getLogger("peakconditions.jobs.refresh").info("refreshed", extra={"point": "baden"})
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        logging.captureWarnings(False)

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["message"] == "refreshed"
    assert record["service"] == "peak-test"
    assert record["point"] == "baden"
    assert record["name"] == "peakconditions.jobs.refresh"
