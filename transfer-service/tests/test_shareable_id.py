import base64

import pytest

from errors import DecodeError
from shareable_id import decode_id, encode_id


def test_encode_then_decode_returns_account_id():
    shareable = encode_id("vzeNDwK7KQIm4yEog683uElbp9GRLEFXGK98D")
    assert decode_id(shareable) == "vzeNDwK7KQIm4yEog683uElbp9GRLEFXGK98D"


def test_decode_known_value():
    assert decode_id("YWNjLTAwMQ==") == "acc-001"


def test_decode_tolerates_surrounding_whitespace():
    assert decode_id("  YWNjLTAwMQ==\n") == "acc-001"


@pytest.mark.parametrize(
    "value",
    [
        "not base64!!",
        "YWNjLTAwMQ",  # bad padding
        "",
        "   ",
        base64.b64encode(b"\xff\xfe").decode(),  # not UTF-8
        base64.b64encode(b"   ").decode(),  # blank once decoded
    ],
)
def test_decode_rejects_malformed_ids(value):
    with pytest.raises(DecodeError) as exc_info:
        decode_id(value)
    assert exc_info.value.status_code == 400


def test_decode_rejects_non_string():
    with pytest.raises(DecodeError):
        decode_id(None)
