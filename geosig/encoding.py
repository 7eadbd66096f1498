"""
RFC 3986 percent-encoding as required by OAuth 1.0 signing.

``urlencode`` and ``quote_plus`` are not usable here: they turn spaces into
``+`` and leave characters such as ``/`` unescaped. Only the unreserved set
``A-Z a-z 0-9 - . _ ~`` passes through; every other octet becomes ``%XX``
with uppercase hex digits.
"""

from typing import Union
from urllib.parse import quote, unquote_to_bytes

from .exceptions import EncodingFailure


def to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, bytes):
        return value
    try:
        return value.encode('utf-8')
    except UnicodeEncodeError as exc:
        raise EncodingFailure(value) from exc


def percent_encode(value: Union[str, bytes]) -> str:
    return quote(to_bytes(value), safe='~')


def percent_decode_bytes(value: str) -> bytes:
    return unquote_to_bytes(value)


def percent_decode(value: str) -> str:
    """Inverse of :func:`percent_encode` for text values."""
    return percent_decode_bytes(value).decode('utf-8')
