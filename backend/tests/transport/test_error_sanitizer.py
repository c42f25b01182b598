import pytest

from gateway_node.errors import GatewayAPIError, UpstreamHTTPError
from gateway_node.transport.error_sanitizer import (
    ERROR_MESSAGES,
    extract_status_code,
    mask_api_key,
    sanitize,
)

API_KEY = "sk-live-abcdef123456"


@pytest.mark.parametrize("status", sorted(ERROR_MESSAGES))
def test_sanitize_uses_fixed_message_for_known_status(status):
    err = sanitize(UpstreamHTTPError("raw upstream text", status_code=status), API_KEY)
    assert isinstance(err, GatewayAPIError)
    assert err.message == ERROR_MESSAGES[status]
    assert err.code == str(status)
    assert err.status_code == status


def test_sanitize_keeps_message_for_unknown_status():
    err = sanitize(UpstreamHTTPError("teapot", status_code=418), API_KEY)
    assert err.message == "teapot"
    assert err.code == "418"


def test_sanitize_redacts_api_key_from_message_and_description():
    raw = UpstreamHTTPError(
        f"invalid key {API_KEY}",
        status_code=None,
        description=f"Authorization: Bearer {API_KEY}; retry with {API_KEY}",
    )
    err = sanitize(raw, API_KEY)

    assert API_KEY not in err.message
    assert API_KEY not in err.description
    assert "sk-l****" in err.message
    assert err.description.count("sk-l****") == 2
    assert err.code == "0"


def test_sanitize_redacts_key_even_when_table_message_applies():
    raw = UpstreamHTTPError("nope", status_code=401, description=f"key={API_KEY}")
    err = sanitize(raw, API_KEY)
    assert err.message == "Unauthorized: invalid API key"
    assert API_KEY not in err.description


def test_sanitize_handles_regex_metacharacters_in_key():
    key = "a+b*c(d)$"
    err = sanitize(UpstreamHTTPError(f"bad {key} here"), key)
    assert key not in err.message
    assert err.message == "bad a+b***** here"


def test_sanitize_plain_exception_and_empty_message():
    assert sanitize(RuntimeError("boom"), API_KEY).message == "boom"
    assert sanitize(RuntimeError(), API_KEY).message == "Unknown error"


def test_mask_api_key_short_keys_are_fully_masked():
    assert mask_api_key("abc") == "****"
    assert mask_api_key("abcd") == "****"
    assert mask_api_key("abcde") == "abcd****"


def test_extract_status_code_prefers_numeric_then_http_code():
    assert extract_status_code(UpstreamHTTPError("x", status_code=503, http_code="500")) == 503
    assert extract_status_code(UpstreamHTTPError("x", http_code="502")) == 502
    assert extract_status_code(UpstreamHTTPError("x", status_code=0, http_code="")) is None
    assert extract_status_code(ValueError("x")) is None
