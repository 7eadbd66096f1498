"""
OAuth 1.0 (RFC 5849) request signing, two-legged.

Every request is signed with the consumer credential only; the token secret
half of the signing key is always empty.
"""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlsplit

from .credentials import Credential
from .encoding import percent_encode, to_bytes
from .exceptions import EncodingFailure, MalformedURL, SigningError, UnsupportedSignatureMethod

logger = logging.getLogger(__name__)

OAUTH_VERSION = '1.0'
AUTH_SCHEME = 'OAuth'
AUTHORIZATION_HEADER = 'Authorization'

Value = Union[str, bytes]
Pairs = List[Tuple[str, Value]]
Params = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]
Headers = Dict[str, Any]

# Never part of the signed parameter set, whatever the caller passes in.
# A realm only goes unsigned when it travels in the Authorization header.
EXCLUDED_PARAMS = frozenset(['oauth_signature'])

DEFAULT_PORTS = {'http': 80, 'https': 443}


class SignatureMethod(str, Enum):
    HMAC_SHA1 = 'HMAC-SHA1'
    HMAC_SHA256 = 'HMAC-SHA256'
    PLAINTEXT = 'PLAINTEXT'

    @classmethod
    def parse(cls, value: Union[str, 'SignatureMethod']) -> 'SignatureMethod':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise UnsupportedSignatureMethod(str(value)) from None


DIGESTS = {
    SignatureMethod.HMAC_SHA1: hashlib.sha1,
    SignatureMethod.HMAC_SHA256: hashlib.sha256,
}


def format_value(value: Any) -> Value:
    """Render a parameter value exactly as it will be sent on the wire."""
    if isinstance(value, (str, bytes)):
        return value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def as_pairs(params: Optional[Params]) -> Pairs:
    """
    Flatten a parameter mapping (or iterable of pairs) into ``(name, value)``
    pairs. List and tuple values yield one pair per element; ``None`` values
    are dropped, matching what the transport puts in the query string.
    """
    if not params:
        return []
    items = params.items() if isinstance(params, Mapping) else params
    pairs: Pairs = []
    for name, value in items:
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if item is None:
                continue
            pairs.append((str(name), format_value(item)))
    return pairs


def normalize_url(url: str) -> str:
    """
    Reduce ``url`` to the base string URI: lower-case scheme and host, no
    default port, path untouched, no query or fragment.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as exc:
        raise MalformedURL(url, str(exc)) from exc

    scheme = parts.scheme.lower()
    host = parts.hostname
    if not scheme or not host:
        raise MalformedURL(url)

    if ':' in host:
        host = f'[{host}]'
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        host = f'{host}:{port}'

    return f'{scheme}://{host}{parts.path}'


def query_pairs(url: str) -> Pairs:
    try:
        query = urlsplit(url).query
    except ValueError as exc:
        raise MalformedURL(url, str(exc)) from exc
    try:
        return list(parse_qsl(query, keep_blank_values=True, errors='strict'))
    except UnicodeDecodeError as exc:
        raise EncodingFailure(query) from exc


def generate_nonce() -> str:
    return secrets.token_hex(16)


def generate_timestamp() -> str:
    return str(int(time.time()))


def protocol_parameters(
        credential: Credential,
        signature_method: SignatureMethod,
        nonce: Optional[str] = None,
        timestamp: Optional[Union[str, int]] = None
) -> Dict[str, str]:
    return {
        'oauth_consumer_key': credential.identifier,
        'oauth_nonce': nonce or generate_nonce(),
        'oauth_signature_method': signature_method.value,
        'oauth_timestamp': str(timestamp) if timestamp is not None else generate_timestamp(),
        'oauth_version': OAUTH_VERSION,
    }


def collect_parameters(url: str, params: Optional[Params], protocol: Mapping[str, str]) -> Pairs:
    """Merge URL query, caller and protocol parameters into one flat list."""
    pairs = query_pairs(url) + as_pairs(params) + list(protocol.items())
    return [(name, value) for name, value in pairs if name not in EXCLUDED_PARAMS]


def normalize_parameters(pairs: Iterable[Tuple[str, Value]]) -> str:
    # Percent-encoded output is pure ASCII, so str ordering is byte ordering.
    encoded = sorted((percent_encode(name), percent_encode(value)) for name, value in pairs)
    return '&'.join(f'{name}={value}' for name, value in encoded)


def signature_base_string(method: str, url: str, normalized_params: str) -> str:
    return '&'.join([
        method.upper(),
        percent_encode(normalize_url(url)),
        percent_encode(normalized_params),
    ])


def signing_key(consumer_secret: str, token_secret: str = '') -> str:
    return f'{percent_encode(consumer_secret)}&{percent_encode(token_secret)}'


def compute_signature(
        base_string: str,
        consumer_secret: str,
        signature_method: SignatureMethod = SignatureMethod.HMAC_SHA1
) -> str:
    key = signing_key(consumer_secret)
    if signature_method is SignatureMethod.PLAINTEXT:
        return key
    digest = hmac.new(to_bytes(key), to_bytes(base_string), DIGESTS[signature_method]).digest()
    return base64.b64encode(digest).decode('ascii')


def render_header(oauth_params: Mapping[str, str], realm: Optional[str] = None) -> str:
    """
    Render ``OAuth realm="...", name="value", ...``. The realm comes first
    when set; protocol parameters follow sorted by name.
    """
    fields = []
    if realm is not None:
        fields.append(f'realm="{percent_encode(realm)}"')
    for name in sorted(oauth_params):
        fields.append(f'{percent_encode(name)}="{percent_encode(oauth_params[name])}"')
    return f'{AUTH_SCHEME} ' + ', '.join(fields)


class OAuthSigner:
    """
    Signs requests with a consumer :class:`Credential`.

    The signer keeps no per-request state, so one instance can be shared
    between threads. Nonce and timestamp are generated per call unless
    pinned through keyword arguments.
    """

    def __init__(
            self,
            credential: Credential,
            signature_method: Union[str, SignatureMethod] = SignatureMethod.HMAC_SHA1,
            realm: Optional[str] = None
    ) -> None:
        self.credential = credential
        self.signature_method = SignatureMethod.parse(signature_method)
        self.realm = realm

    def sign_parameters(
            self,
            method: str,
            url: str,
            params: Optional[Params] = None,
            nonce: Optional[str] = None,
            timestamp: Optional[Union[str, int]] = None
    ) -> Dict[str, str]:
        """Return the protocol parameters for this request, ``oauth_signature`` included."""
        if self.credential.is_anonymous:
            raise SigningError("An anonymous credential cannot sign requests")

        oauth_params = protocol_parameters(self.credential, self.signature_method, nonce, timestamp)
        pairs = collect_parameters(url, params, oauth_params)
        base_string = signature_base_string(method, url, normalize_parameters(pairs))
        logger.debug("Signature base string: %s", base_string)

        oauth_params['oauth_signature'] = compute_signature(
            base_string, self.credential.secret, self.signature_method
        )
        return oauth_params

    def sign(
            self,
            method: str,
            url: str,
            params: Optional[Params] = None,
            nonce: Optional[str] = None,
            timestamp: Optional[Union[str, int]] = None
    ) -> str:
        oauth_params = self.sign_parameters(method, url, params, nonce, timestamp)
        return render_header(oauth_params, self.realm)

    def create_headers(
            self,
            method: str,
            url: str,
            headers: Optional[Headers] = None,
            params: Optional[Params] = None
    ) -> Headers:
        """
        Return a copy of ``headers`` carrying the ``Authorization`` header.
        Anonymous credentials leave the headers untouched.
        """
        signed = dict(headers or {})
        if self.credential.is_anonymous:
            return signed
        signed[AUTHORIZATION_HEADER] = self.sign(method, url, params)
        return signed


def sign(
        credential: Credential,
        method: str,
        url: str,
        parameters: Optional[Params] = None,
        signature_method: Union[str, SignatureMethod] = SignatureMethod.HMAC_SHA1,
        realm: Optional[str] = None,
        nonce: Optional[str] = None,
        timestamp: Optional[Union[str, int]] = None
) -> str:
    """Sign one request and return the ``Authorization`` header value."""
    signer = OAuthSigner(credential, signature_method, realm)
    return signer.sign(method, url, parameters, nonce, timestamp)
