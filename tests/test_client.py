import json
import unittest
from typing import List
from unittest import mock

import requests
from freezegun import freeze_time

from geosig.client import DEFAULT_BASE_URL, SimpleGeo
from geosig.credentials import Credential
from geosig.exceptions import APIError, DecodeError, MalformedURL
from geosig.models import GeoPoint, Place, Record
from geosig.oauth import OAuthSigner
from geosig.transport import Request, RequestsTransport, Response


class FakeTransport:
    def __init__(self, *responses: Response) -> None:
        self.responses = list(responses)
        self.requests: List[Request] = []

    def send(self, request: Request) -> Response:
        self.requests.append(request)
        if self.responses:
            return self.responses.pop(0)
        return Response(200, b'{}')


class TestSimpleGeoClient(unittest.TestCase):

    def setUp(self) -> None:
        self.transport = FakeTransport()
        self.client = SimpleGeo(Credential('CONSUMERKEY', 'CONSUMERSECRET'), transport=self.transport)

    @property
    def last(self) -> Request:
        return self.transport.requests[-1]

    def test_default_base_url(self) -> None:
        self.client.feature_categories()

        self.assertEqual(self.last.method, 'GET')
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '1.0/features/categories.json')

    def test_base_url_per_instance(self) -> None:
        staging = SimpleGeo('key', 'secret', base_url='https://staging.example.com', transport=self.transport)
        staging.feature('SG_abc')
        self.client.feature('SG_abc')

        urls = [r.url for r in self.transport.requests]
        self.assertEqual(urls, [
            'https://staging.example.com/1.0/features/SG_abc.json',
            'http://api.simplegeo.com/1.0/features/SG_abc.json',
        ])

    def test_string_credentials(self) -> None:
        client = SimpleGeo('key', 'secret', transport=self.transport)

        self.assertEqual(client.credential, Credential('key', 'secret'))

    def test_decodes_json(self) -> None:
        self.transport.responses.append(Response(200, b'{"features": [{"name": "Vancouver"}]}'))

        result = self.client.context_coord(49.239, -123.129)

        self.assertEqual(result, {'features': [{'name': 'Vancouver'}]})

    def test_empty_body_is_none(self) -> None:
        self.transport.responses.append(Response(204, b''))

        self.assertIsNone(self.client.delete_record(Record(layer='layer', id='1')))

    @freeze_time('2009-02-13 23:31:30')
    def test_request_is_signed_over_sent_parameters(self) -> None:
        with mock.patch('geosig.oauth.generate_nonce', return_value='abc123'):
            client = SimpleGeo(
                Credential('CONSUMERKEY', 'CONSUMERSECRET'),
                base_url='http://api.example.com/',
                transport=self.transport,
            )
            client.context_coord(GeoPoint(49.239, -123.129), filter='features')

        self.assertEqual(self.last.url, 'http://api.example.com/1.0/context/49.239,-123.129.json')
        self.assertEqual(self.last.params, [('filter', 'features')])
        self.assertIn('oauth_signature="NXhGL1WaIK%2FpwXFCfJCXDJZOEN8%3D"', self.last.headers['Authorization'])

    def test_signature_matches_independent_signer(self) -> None:
        self.client.places_address('41 Decatur St, San Francisco, CA', q='coffee', radius=2)

        header = self.last.headers['Authorization']
        fields = dict(item.split('=', 1) for item in header[len('OAuth '):].split(', '))
        nonce = fields['oauth_nonce'].strip('"')
        timestamp = fields['oauth_timestamp'].strip('"')

        expected = OAuthSigner(self.client.credential).sign(
            'GET', self.last.url, self.last.params, nonce=nonce, timestamp=timestamp
        )
        self.assertEqual(header, expected)

    @freeze_time('2009-02-13 23:31:30')
    def test_realm_parameter_sent_and_signed(self) -> None:
        with mock.patch('geosig.oauth.generate_nonce', return_value='abc123'):
            self.client.places_address('1 Main', realm='x')
            with_realm = self.last
            self.client.places_address('1 Main')
            without_realm = self.last

        self.assertEqual(with_realm.params, [('realm', 'x'), ('address', '1 Main')])
        expected = OAuthSigner(self.client.credential).sign(
            'GET', with_realm.url, [('realm', 'x'), ('address', '1 Main')], nonce='abc123', timestamp=1234567890
        )
        self.assertEqual(with_realm.headers['Authorization'], expected)
        self.assertNotEqual(with_realm.headers['Authorization'], without_realm.headers['Authorization'])

    def test_anonymous_requests_are_unsigned(self) -> None:
        client = SimpleGeo(transport=self.transport)
        client.feature_categories()

        self.assertNotIn('Authorization', self.last.headers)

    def test_context_endpoints(self) -> None:
        self.client.context_ip('1.2.3.4', filter='features')
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '1.0/context/1.2.3.4.json')
        self.assertEqual(self.last.params, [('filter', 'features')])

        self.client.context_address('41 Decatur St, San Francisco, CA')
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '1.0/context/address.json')
        self.assertEqual(self.last.params, [('address', '41 Decatur St, San Francisco, CA')])

    def test_places_endpoints(self) -> None:
        self.client.places_ip('1.2.3.4', q='pizza')
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '1.0/places/1.2.3.4.json')

        self.client.places_coord(37.7, -122.4, category='Restaurants', radius=1.5)
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '1.0/places/37.7,-122.4.json')
        self.assertEqual(self.last.params, [('category', 'Restaurants'), ('radius', '1.5')])

        self.client.places_address('1 Main St', q='bar')
        self.assertEqual(self.last.params, [('q', 'bar'), ('address', '1 Main St')])

    def test_coordinate_requires_longitude(self) -> None:
        with self.assertRaises(ValueError):
            self.client.places_coord(37.7)

    def test_place_crud(self) -> None:
        place = Place(lat=37.7, lng=-122.4)
        place.set('name', 'Ferry Building')

        self.client.create_place(place)
        self.assertEqual(self.last.method, 'POST')
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '1.0/places')
        self.assertEqual(json.loads(self.last.body), place.to_dict())
        self.assertEqual(self.last.headers['Content-Type'], 'application/json')

        place.id = 'SG_2dMpa8bMXgV0cbAu7ZxMNv'
        self.client.update_place(place)
        self.assertEqual(self.last.method, 'POST')
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '1.0/features/SG_2dMpa8bMXgV0cbAu7ZxMNv.json')

        self.client.delete_place(place)
        self.assertEqual(self.last.method, 'DELETE')
        self.assertIsNone(self.last.body)

    def test_place_without_id(self) -> None:
        with self.assertRaises(ValueError):
            self.client.delete_place(Place(lat=1.0, lng=2.0))
        self.assertEqual(self.transport.requests, [])

    def test_record_crud(self) -> None:
        record = Record(layer='com.example.cafes', id='cafe 1', lat=49.2, lng=-123.1)
        record.set('name', 'Caffe Artigiano')

        self.client.put_record(record)
        self.assertEqual(self.last.method, 'PUT')
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '0.1/records/com.example.cafes/cafe%201.json')
        self.assertEqual(json.loads(self.last.body)['properties'], {'name': 'Caffe Artigiano'})

        self.client.get_record(record)
        self.assertEqual(self.last.method, 'GET')

        self.client.record_history(record)
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '0.1/records/com.example.cafes/cafe%201/history.json')

        self.client.delete_record(record)
        self.assertEqual(self.last.method, 'DELETE')

    def test_nearby_records(self) -> None:
        self.client.nearby_records_coord('layer', 37.7, -122.4, radius=5, limit=10)
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '0.1/records/layer/nearby/37.7,-122.4.json')
        self.assertEqual(self.last.params, [('radius', '5'), ('limit', '10')])

        self.client.nearby_records_geohash('layer', '9q8yy', types=['object', 'place'])
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '0.1/records/layer/nearby/9q8yy.json')
        self.assertEqual(self.last.params, [('types', 'object'), ('types', 'place')])

        self.client.nearby_records_ip('layer', '1.2.3.4')
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '0.1/records/layer/nearby/1.2.3.4.json')

        self.client.nearby_records_address('layer', '1 Main St', limit=1)
        self.assertEqual(self.last.url, DEFAULT_BASE_URL + '0.1/records/layer/nearby/address.json')
        self.assertEqual(self.last.params, [('limit', '1'), ('address', '1 Main St')])

    def test_error_status_raises(self) -> None:
        self.transport.responses.append(Response(404, b'{"message": "No such record."}'))

        with self.assertRaises(APIError) as ctx:
            self.client.get_record(Record(layer='layer', id='missing'))

        self.assertEqual(ctx.exception.status_code, 404)
        self.assertIn(b'No such record', ctx.exception.body)

    def test_invalid_json_raises(self) -> None:
        self.transport.responses.append(Response(200, b'<html>oops</html>'))

        with self.assertRaises(DecodeError):
            self.client.feature_categories()

    def test_malformed_base_url_fails_before_sending(self) -> None:
        client = SimpleGeo('key', 'secret', base_url='api.example.com', transport=self.transport)

        with self.assertRaises(MalformedURL):
            client.feature_categories()
        self.assertEqual(self.transport.requests, [])


class TestRequestsTransport(unittest.TestCase):

    def _session(self, status: int = 200, content: bytes = b'{}') -> mock.Mock:
        session = mock.Mock(spec=requests.Session)
        session.headers = {}
        resp = mock.Mock(status_code=status, content=content, headers={'Content-Type': 'application/json'})
        session.request.return_value = resp
        return session

    def test_send(self) -> None:
        session = self._session(201, b'{"ok": true}')
        transport = RequestsTransport(timeout=5, session=session)

        response = transport.send(Request(
            'PUT', 'http://api.example.com/x.json', [('a', '1')], {'Authorization': 'OAuth x'}, '{}'
        ))

        session.request.assert_called_once_with(
            'PUT',
            'http://api.example.com/x.json',
            params=[('a', '1')],
            headers={'Authorization': 'OAuth x'},
            data='{}',
            timeout=5,
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json(), {'ok': True})
        self.assertEqual(response.headers, {'Content-Type': 'application/json'})

    def test_user_agent(self) -> None:
        session = self._session()
        RequestsTransport(session=session, user_agent='geosig-tests/1.0')

        self.assertEqual(session.headers['User-Agent'], 'geosig-tests/1.0')

    def test_connection_errors_propagate(self) -> None:
        session = self._session()
        session.request.side_effect = requests.ConnectionError('refused')

        with self.assertRaises(requests.ConnectionError):
            RequestsTransport(session=session).send(Request('GET', 'http://api.example.com/'))

    def test_context_manager_closes_session(self) -> None:
        session = self._session()
        with RequestsTransport(session=session):
            pass

        session.close.assert_called_once_with()


if __name__ == '__main__':
    unittest.main(verbosity=2)
