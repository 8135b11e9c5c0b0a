"""Tests for AMCP command encoding, reply decoding and classification."""

import io

import pytest

from amcpkit.devices.codec import (
    AmcpResponse,
    ResponseOutcome,
    classify,
    encode_command,
    parse_status_line,
    read_response,
)
from amcpkit.devices.errors import ProtocolError, ReceiveError


def _decode(raw: bytes) -> AmcpResponse:
    return read_response(io.BytesIO(raw))


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def test_encode_appends_crlf_once():
    assert encode_command("VERSION") == b"VERSION\r\n"


def test_encode_leaves_command_text_alone():
    """Command content is opaque: no trimming, case changes or validation."""
    cmd = '  PLAY 1-20 "[HTML] http://x/a.html?mode=fill&id=1"  '
    assert encode_command(cmd) == (cmd + "\r\n").encode("utf-8")


# ---------------------------------------------------------------------------
# Status line parsing
# ---------------------------------------------------------------------------

def test_parse_status_line_variants():
    assert parse_status_line("200 OK") == (200, "OK")
    assert parse_status_line("201 VERSION OK") == (201, "VERSION OK")
    assert parse_status_line("404 ERROR") == (404, "ERROR")
    assert parse_status_line("202 PLAY OK\r\n") == (202, "PLAY OK")


def test_parse_bare_code_gives_empty_message():
    assert parse_status_line("200") == (200, "")


@pytest.mark.parametrize("line", ["", "   ", "OK 200", "2x0 OK", "-1 BAD", "+200 OK", "２００ OK"])
def test_parse_rejects_non_numeric_code(line):
    with pytest.raises(ProtocolError):
        parse_status_line(line)


# ---------------------------------------------------------------------------
# Envelope decoding
# ---------------------------------------------------------------------------

def test_scenario_plain_ok():
    r = _decode(b"200 OK\r\n")
    assert (r.code, r.message, r.data) == (200, "OK", None)


def test_scenario_ok_suffix_reads_no_data_block():
    """A 2xx line ending in ' OK' is complete even if more bytes follow."""
    buf = io.BytesIO(b"201 VERSION OK\r\n2.3.0\r\n")
    r = read_response(buf)
    assert (r.code, r.message, r.data) == (201, "VERSION OK", None)
    assert buf.read() == b"2.3.0\r\n"


def test_scenario_data_block():
    r = _decode(b"200 DATA\r\nline1\r\nline2\r\n\r\n")
    assert (r.code, r.message, r.data) == (200, "DATA", "line1\nline2")
    assert r.outcome is ResponseOutcome.SUCCESS_WITH_DATA
    assert r.lines == ["line1", "line2"]


def test_scenario_error_reply():
    r = _decode(b"404 ERROR\r\n")
    assert (r.code, r.message, r.data) == (404, "ERROR", None)
    assert r.is_error
    assert not r.is_success
    assert r.outcome is ResponseOutcome.CLIENT_ERROR


def test_bare_success_code_has_no_data():
    buf = io.BytesIO(b"200\r\nleftover\r\n")
    r = read_response(buf)
    assert (r.code, r.message, r.data) == (200, "", None)
    assert buf.read() == b"leftover\r\n"


def test_empty_data_block_is_none():
    r = _decode(b"200 INFO\r\n\r\n")
    assert r.data is None
    assert r.outcome is ResponseOutcome.SUCCESS


def test_data_block_accepts_bare_lf():
    r = _decode(b"201 INFO\nabc\n\n")
    assert r.data == "abc"


def test_data_block_leaves_next_reply_unread():
    buf = io.BytesIO(b"200 INFO PATHS\r\n<paths/>\r\n\r\n202 PLAY OK\r\n")
    assert read_response(buf).data == "<paths/>"
    assert read_response(buf).status_line == "202 PLAY OK"


@pytest.mark.parametrize("code", [100, 199, 300, 301, 400, 404, 500, 503])
def test_non_success_codes_never_read_data(code):
    buf = io.BytesIO(f"{code} SOMETHING WITH DATA\r\nnext\r\n".encode())
    r = read_response(buf)
    assert r.data is None
    assert buf.read() == b"next\r\n"


def test_eof_before_status_line():
    with pytest.raises(ReceiveError):
        _decode(b"")


def test_partial_status_line():
    with pytest.raises(ReceiveError):
        _decode(b"200 OK")


def test_eof_inside_data_block():
    with pytest.raises(ReceiveError, match="data block"):
        _decode(b"200 INFO\r\nline1\r\n")


def test_malformed_status_line_raises_protocol_error():
    with pytest.raises(ProtocolError):
        _decode(b"HELLO\r\n")


def test_status_line_round_trip():
    for line in ["200 OK", "202 PLAY OK", "404 ERROR", "200", "500 FAILED"]:
        assert _decode((line + "\r\n").encode()).status_line == line


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "code,expected",
    [
        (200, ResponseOutcome.SUCCESS),
        (299, ResponseOutcome.SUCCESS),
        (400, ResponseOutcome.CLIENT_ERROR),
        (499, ResponseOutcome.CLIENT_ERROR),
        (500, ResponseOutcome.SERVER_ERROR),
        (599, ResponseOutcome.SERVER_ERROR),
        (101, ResponseOutcome.OTHER),
        (300, ResponseOutcome.OTHER),
    ],
)
def test_classify_ranges(code, expected):
    assert classify(code) is expected


def test_classify_with_data():
    assert classify(201, has_data=True) is ResponseOutcome.SUCCESS_WITH_DATA
    assert classify(404, has_data=True) is ResponseOutcome.CLIENT_ERROR


def test_informational_and_redirect_codes_are_neither():
    for code in (100, 300):
        r = AmcpResponse(code=code, message="X")
        assert not r.is_success
        assert not r.is_error


def test_to_dict():
    assert AmcpResponse(200, "DATA", "a").to_dict() == {
        "code": 200, "message": "DATA", "data": "a", "outcome": "success_with_data",
    }
