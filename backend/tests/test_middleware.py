"""
NoteDigest Backend: Request ID and Logging Middleware Tests
===========================================================

What we test:
    ✅ Client request ids are reused only when well-formed
    ✅ Log records carry the active request id ("-" outside requests)
    ✅ Access log level follows the status class
    ✅ Every ErrorKind has an HTTP mapping
"""

import logging

import pytest

from notedigest.exceptions import ErrorKind
from notedigest.main import UPSTREAM_ERROR_RESPONSES
from notedigest.middleware.logging import level_for_status
from notedigest.middleware.request_id import (
    RequestIDLogFilter,
    request_id_var,
    resolve_request_id,
)


def _record():
    return logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)


class TestRequestId:

    def test_well_formed_client_id_is_reused(self):
        assert resolve_request_id("abc-123_x.y") == "abc-123_x.y"

    @pytest.mark.parametrize("header", [None, "", "has space", "x" * 65, "line\nbreak"])
    def test_other_values_are_replaced(self, header):
        rid = resolve_request_id(header)
        assert rid != header
        assert len(rid) == 8

    def test_log_filter_outside_request(self):
        record = _record()
        assert RequestIDLogFilter().filter(record) is True
        assert record.request_id == "-"

    def test_log_filter_inside_request(self):
        token = request_id_var.set("trace-1")
        try:
            record = _record()
            RequestIDLogFilter().filter(record)
        finally:
            request_id_var.reset(token)

        assert record.request_id == "trace-1"


class TestAccessLogLevel:

    @pytest.mark.parametrize(
        "status, level",
        [(200, logging.INFO), (201, logging.INFO), (404, logging.WARNING), (429, logging.WARNING), (503, logging.ERROR)],
    )
    def test_level_for_status(self, status, level):
        assert level_for_status(status) == level


def test_every_error_kind_has_a_response():
    assert set(UPSTREAM_ERROR_RESPONSES) == set(ErrorKind)
