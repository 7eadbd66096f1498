from typing import Optional


class GeoSigError(Exception):
    """Base class for every error raised by geosig."""


class SigningError(GeoSigError):
    """A request could not be signed. Raised before anything is sent."""


class MalformedURL(SigningError, ValueError):
    def __init__(self, url: str, reason: str = 'missing scheme or host') -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Cannot sign malformed URL {url!r}: {reason}")


class UnsupportedSignatureMethod(SigningError, ValueError):
    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Unsupported signature method: {method!r}")


class EncodingFailure(SigningError, ValueError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Cannot percent-encode value that is not valid UTF-8: {value!r}")


class APIError(GeoSigError):
    """The service answered with a non-2xx status."""

    def __init__(self, status_code: int, body: bytes, url: Optional[str] = None) -> None:
        self.status_code = status_code
        self.body = body
        self.url = url
        text = body.decode('utf-8', errors='replace')[:200]
        super().__init__(f"HTTP {status_code} from {url or 'service'}: {text}")


class DecodeError(GeoSigError):
    """The response body was not valid JSON."""

    def __init__(self, body: bytes) -> None:
        self.body = body
        super().__init__(f"Response body is not valid JSON ({len(body)} bytes)")
