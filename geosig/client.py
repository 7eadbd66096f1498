import json
import logging
from typing import Any, Optional, Union
from urllib.parse import quote

from .credentials import Credential
from .exceptions import APIError
from .models import GeoPoint, Place, Record
from .oauth import OAuthSigner, Params, SignatureMethod, as_pairs
from .transport import DEFAULT_TIMEOUT, Request, RequestsTransport, Transport

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'http://api.simplegeo.com/'

Coordinate = Union[float, GeoPoint]


def _segment(value: Any) -> str:
    # Path segments keep ',' and ':' readable (coordinates, IPv6 addresses).
    return quote(str(value), safe=',:')


class SimpleGeo:
    """
    Client for the SimpleGeo context, places and storage APIs.

    Each request is signed with the client's credential and dispatched
    through ``transport``. Responses are decoded JSON (dicts and lists).

        client = SimpleGeo(Credential('key', 'secret'))
        client.context_coord(49.239, -123.129, filter='features')
    """

    def __init__(
            self,
            credential: Union[Credential, str, None] = None,
            secret: Optional[str] = None,
            base_url: str = DEFAULT_BASE_URL,
            transport: Optional[Transport] = None,
            signature_method: Union[str, SignatureMethod] = SignatureMethod.HMAC_SHA1,
            realm: Optional[str] = None,
            timeout: Optional[float] = DEFAULT_TIMEOUT
    ) -> None:
        if credential is None:
            credential = Credential.anonymous()
        elif not isinstance(credential, Credential):
            credential = Credential(credential, secret or '')
        self.credential = credential
        self.signer = OAuthSigner(credential, signature_method, realm)
        self.base_url = base_url if base_url.endswith('/') else base_url + '/'
        self.transport = transport or RequestsTransport(timeout=timeout)

    def url_for(self, path: str) -> str:
        return self.base_url + path.lstrip('/')

    def send_request(
            self,
            method: str,
            path: str,
            params: Optional[Params] = None,
            body: Optional[Any] = None
    ) -> Any:
        """
        Sign and send one request, returning the decoded JSON response.

        ``params`` go into the query string and are signed; ``body`` is
        JSON-encoded and, not being form data, stays out of the signature.
        """
        method = method.upper()
        url = self.url_for(path)
        pairs = as_pairs(params)
        headers = {}
        data = None
        if body is not None:
            data = json.dumps(body)
            headers['Content-Type'] = 'application/json'

        headers = self.signer.create_headers(method, url, headers, pairs)
        response = self.transport.send(Request(method, url, pairs, headers, data))
        if not response.ok:
            logger.debug("%s %s failed with status %d", method, url, response.status_code)
            raise APIError(response.status_code, response.body, url)
        return response.json()

    # Features

    def feature_categories(self) -> Any:
        return self.send_request('GET', '1.0/features/categories.json')

    def feature(self, handle: str) -> Any:
        return self.send_request('GET', f'1.0/features/{_segment(handle)}.json')

    # Context

    def context_ip(self, ip: str, **opts: Any) -> Any:
        return self.send_request('GET', f'1.0/context/{_segment(ip)}.json', opts)

    def context_coord(self, lat: Coordinate, lng: Optional[float] = None, **opts: Any) -> Any:
        point = _point(lat, lng)
        return self.send_request('GET', f'1.0/context/{_segment(point)}.json', opts)

    def context_address(self, address: str, **opts: Any) -> Any:
        return self.send_request('GET', '1.0/context/address.json', dict(opts, address=address))

    # Places

    def places_ip(self, ip: str, **opts: Any) -> Any:
        return self.send_request('GET', f'1.0/places/{_segment(ip)}.json', opts)

    def places_coord(self, lat: Coordinate, lng: Optional[float] = None, **opts: Any) -> Any:
        point = _point(lat, lng)
        return self.send_request('GET', f'1.0/places/{_segment(point)}.json', opts)

    def places_address(self, address: str, **opts: Any) -> Any:
        return self.send_request('GET', '1.0/places/address.json', dict(opts, address=address))

    def create_place(self, place: Place) -> Any:
        return self.send_request('POST', '1.0/places', body=place.to_dict())

    def update_place(self, place: Place) -> Any:
        return self.send_request('POST', f'1.0/features/{_place_id(place)}.json', body=place.to_dict())

    def delete_place(self, place: Place) -> Any:
        return self.send_request('DELETE', f'1.0/features/{_place_id(place)}.json')

    # Storage

    def put_record(self, record: Record) -> Any:
        return self.send_request('PUT', _record_path(record) + '.json', body=record.to_dict())

    def get_record(self, record: Record) -> Any:
        return self.send_request('GET', _record_path(record) + '.json')

    def delete_record(self, record: Record) -> Any:
        return self.send_request('DELETE', _record_path(record) + '.json')

    def record_history(self, record: Record) -> Any:
        return self.send_request('GET', _record_path(record) + '/history.json')

    def nearby_records_coord(self, layer: str, lat: Coordinate, lng: Optional[float] = None, **params: Any) -> Any:
        point = _point(lat, lng)
        return self.send_request('GET', f'{_nearby_path(layer)}/{_segment(point)}.json', params)

    def nearby_records_address(self, layer: str, address: str, **params: Any) -> Any:
        return self.send_request('GET', f'{_nearby_path(layer)}/address.json', dict(params, address=address))

    def nearby_records_geohash(self, layer: str, geohash: str, **params: Any) -> Any:
        return self.send_request('GET', f'{_nearby_path(layer)}/{_segment(geohash)}.json', params)

    def nearby_records_ip(self, layer: str, ip: str, **params: Any) -> Any:
        return self.send_request('GET', f'{_nearby_path(layer)}/{_segment(ip)}.json', params)


def _point(lat: Coordinate, lng: Optional[float]) -> GeoPoint:
    if isinstance(lat, GeoPoint):
        return lat
    if lng is None:
        raise ValueError("Longitude is required when latitude is not a GeoPoint")
    return GeoPoint(lat, lng)


def _place_id(place: Place) -> str:
    if not place.id:
        raise ValueError("Place has no id; create it first")
    return _segment(place.id)


def _record_path(record: Record) -> str:
    return f'0.1/records/{_segment(record.layer)}/{_segment(record.id)}'


def _nearby_path(layer: str) -> str:
    return f'0.1/records/{_segment(layer)}/nearby'
