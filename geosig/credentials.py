from dataclasses import dataclass


@dataclass(frozen=True)
class Credential:
    """
    An OAuth consumer key/secret pair identifying one registered application.

    ``Credential.anonymous()`` is the empty variant used for unsigned
    requests. Any other credential needs a non-empty identifier.
    """

    identifier: str
    secret: str

    def __post_init__(self) -> None:
        if not self.identifier and self.secret:
            raise ValueError("Credential identifier must not be empty")

    @classmethod
    def anonymous(cls) -> 'Credential':
        return cls('', '')

    @property
    def is_anonymous(self) -> bool:
        return not self.identifier and not self.secret

    def __repr__(self) -> str:
        return f"Credential(identifier={self.identifier!r}, secret='***')"
