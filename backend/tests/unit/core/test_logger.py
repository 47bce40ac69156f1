from __future__ import annotations

import json
import logging

from tokenauth.core.logger import JSONFormatter, sanitize_log_value


def test_sanitize_log_value():
    assert sanitize_log_value(None) == ""
    assert sanitize_log_value("a\nb\rc\td") == "a_b_c_d"
    assert len(sanitize_log_value("x" * 2000)) == 500


def test_json_formatter_promotes_known_extras():
    record = logging.LogRecord(
        "tokenauth.test", logging.INFO, __file__, 1, "hello %s", ("w",), None
    )
    record.user_id = "u-1"
    record.unrelated = "ignored"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "hello w"
    assert payload["level"] == "INFO"
    assert payload["user_id"] == "u-1"
    assert "unrelated" not in payload
