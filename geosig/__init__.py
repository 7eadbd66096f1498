"""
SimpleGeo API client with standalone OAuth 1.0 request signing

This package provides a client for the SimpleGeo context, places and storage
APIs, and a standalone OAuth 1.0 (HMAC-SHA1) signer that doesn't depend on an
OAuth library for signing operations.
"""

import logging

from .client import DEFAULT_BASE_URL, SimpleGeo
from .credentials import Credential
from .exceptions import (
    APIError,
    DecodeError,
    EncodingFailure,
    GeoSigError,
    MalformedURL,
    SigningError,
    UnsupportedSignatureMethod,
)
from .models import GeoPoint, Place, PropertyKind, PropertyValue, Record, extract_id
from .oauth import OAuthSigner, SignatureMethod, sign
from .transport import Request, RequestsTransport, Response, Transport

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "SimpleGeo", "DEFAULT_BASE_URL", "Credential", "OAuthSigner", "SignatureMethod", "sign",
    "GeoPoint", "Place", "PropertyKind", "PropertyValue", "Record", "extract_id",
    "Request", "Response", "Transport", "RequestsTransport",
    "GeoSigError", "SigningError", "MalformedURL", "UnsupportedSignatureMethod", "EncodingFailure",
    "APIError", "DecodeError",
]
