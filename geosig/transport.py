import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Union

import requests

from .exceptions import DecodeError
from .oauth import Headers, Pairs

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class Request:
    method: str
    url: str
    params: Pairs = field(default_factory=list)
    headers: Headers = field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None


@dataclass
class Response:
    status_code: int
    body: bytes = b''
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if not self.body.strip():
            return None
        try:
            return json.loads(self.body)
        except ValueError as exc:
            raise DecodeError(self.body) from exc


class Transport(Protocol):
    def send(self, request: Request) -> Response:
        ...


class RequestsTransport:
    """
    :class:`Transport` backed by a ``requests.Session``.

    Parameters always travel in the query string, in the order and encoding
    they were signed with. Connection errors and timeouts raised by
    ``requests`` are not caught.
    """

    def __init__(
            self,
            timeout: Optional[float] = DEFAULT_TIMEOUT,
            session: Optional[requests.Session] = None,
            user_agent: Optional[str] = None
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        if user_agent:
            self.session.headers['User-Agent'] = user_agent

    def send(self, request: Request) -> Response:
        logger.debug("%s %s", request.method, request.url)
        resp = self.session.request(
            request.method,
            request.url,
            params=request.params or None,
            headers=request.headers,
            data=request.body,
            timeout=self.timeout,
        )
        logger.debug("%s %s -> %d", request.method, request.url, resp.status_code)
        return Response(resp.status_code, resp.content, dict(resp.headers))

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> 'RequestsTransport':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
