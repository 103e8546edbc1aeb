from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.simulator",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Simulated fill level drift",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_whitelisted_context() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(bin_id=4, fill_level=91, unrelated="x", attempt=None))

    assert line == "Simulated fill level drift | bin_id=4 fill_level=91"


def test_formatter_quotes_values_with_spaces() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["reason"])

    line = formatter.format(_record(reason="retry in 5.0s", bin_id=1))

    assert line == "Simulated fill level drift | reason='retry in 5.0s'"


def test_formatter_without_context_leaves_message_alone() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    assert formatter.format(_record()) == "INFO Simulated fill level drift"
