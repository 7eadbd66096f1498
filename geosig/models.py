import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

Scalar = Union[str, int, float, bool, None]

HANDLE_PATTERN = re.compile(r'SG_[A-Za-z0-9]{22}')


def extract_id(text: str) -> Optional[str]:
    """Pull the first feature handle (``SG_`` + 22 alphanumerics) out of ``text``."""
    match = HANDLE_PATTERN.search(text)
    return match.group(0) if match else None


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def __str__(self) -> str:
        return f'{self.lat},{self.lng}'


class PropertyKind(Enum):
    STRING = 'string'
    NUMBER = 'number'
    BOOLEAN = 'boolean'
    NULL = 'null'


@dataclass(frozen=True)
class PropertyValue:
    """A single feature property: a string, a number, a boolean or null."""

    kind: PropertyKind
    value: Scalar = None

    @classmethod
    def of(cls, value: Any) -> 'PropertyValue':
        if isinstance(value, PropertyValue):
            return value
        if value is None:
            return cls(PropertyKind.NULL)
        # bool is a subclass of int
        if isinstance(value, bool):
            return cls(PropertyKind.BOOLEAN, value)
        if isinstance(value, (int, float)):
            return cls(PropertyKind.NUMBER, value)
        if isinstance(value, str):
            return cls(PropertyKind.STRING, value)
        raise TypeError(f"Unsupported property value type: {type(value).__name__}")

    @property
    def is_null(self) -> bool:
        return self.kind is PropertyKind.NULL

    def _expect(self, kind: PropertyKind) -> Scalar:
        if self.kind is not kind:
            raise TypeError(f"Property is a {self.kind.value}, not a {kind.value}")
        return self.value

    def as_string(self) -> str:
        return self._expect(PropertyKind.STRING)  # type: ignore[return-value]

    def as_number(self) -> Union[int, float]:
        return self._expect(PropertyKind.NUMBER)  # type: ignore[return-value]

    def as_bool(self) -> bool:
        return self._expect(PropertyKind.BOOLEAN)  # type: ignore[return-value]

    def to_json(self) -> Scalar:
        return self.value


@dataclass
class Feature:
    """
    A point with a bag of typed properties. Base for :class:`Record` and
    :class:`Place`.
    """

    lat: Optional[float] = None
    lng: Optional[float] = None
    properties: Dict[str, PropertyValue] = field(default_factory=dict)

    def set(self, key: str, value: Any) -> None:
        self.properties[key] = PropertyValue.of(value)

    def get(self, key: str) -> Optional[PropertyValue]:
        return self.properties.get(key)

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        prop = self.properties.get(key)
        return default if prop is None or prop.is_null else prop.as_string()

    def get_number(self, key: str, default: Optional[Union[int, float]] = None) -> Optional[Union[int, float]]:
        prop = self.properties.get(key)
        return default if prop is None or prop.is_null else prop.as_number()

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        prop = self.properties.get(key)
        return default if prop is None or prop.is_null else prop.as_bool()

    def delete(self, key: str) -> None:
        self.properties.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(self.properties)

    def update(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            self.set(key, value)

    @property
    def point(self) -> Optional[GeoPoint]:
        if self.lat is None or self.lng is None:
            return None
        return GeoPoint(self.lat, self.lng)

    def _geometry(self) -> Dict[str, Any]:
        return {'type': 'Point', 'coordinates': [self.lng, self.lat]}

    def _properties_json(self) -> Dict[str, Scalar]:
        return {key: value.to_json() for key, value in self.properties.items()}


@dataclass(init=False)
class Record(Feature):
    """
    An object stored in a storage layer, addressed by ``layer`` and ``id``.

        record = Record('com.example.cafes', 'cafe-1', 49.239, -123.129)
    """

    layer: str = ''
    id: str = ''
    created: int = 0

    def __init__(
            self,
            layer: str,
            id: str,
            lat: Optional[float] = None,
            lng: Optional[float] = None,
            created: Optional[int] = None,
            properties: Optional[Mapping[str, Any]] = None
    ) -> None:
        if not layer or not id:
            raise ValueError("Record needs both a layer and an id")
        super().__init__(lat=lat, lng=lng)
        self.layer = layer
        self.id = id
        self.created = int(time.time()) if created is None else created
        self.update(properties or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'Feature',
            'id': self.id,
            'created': self.created,
            'geometry': self._geometry(),
            'properties': self._properties_json(),
        }

    @classmethod
    def from_dict(cls, layer: str, data: Mapping[str, Any]) -> 'Record':
        if not data.get('id'):
            raise ValueError("Record payload has no id")
        lng, lat = _coordinates(data)
        created = data.get('created')
        return cls(
            layer,
            data['id'],
            lat,
            lng,
            created=int(created) if created is not None else None,
            properties=data.get('properties'),
        )


@dataclass
class Place(Feature):
    """A public place. ``id`` stays unset until the service assigns a handle."""

    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'type': 'Feature'}
        if self.id:
            data['id'] = self.id
        data['geometry'] = self._geometry()
        data['properties'] = self._properties_json()
        return data


def _coordinates(data: Mapping[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    coords = (data.get('geometry') or {}).get('coordinates')
    if not coords:
        return None, None
    if len(coords) < 2:
        raise ValueError(f"Point needs [lng, lat] coordinates, got {coords!r}")
    return coords[0], coords[1]
