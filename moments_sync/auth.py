"""Authentication signal consumed by the remote client."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID


class AuthProvider(Protocol):
    """Anything that can tell whether a session is active."""

    @property
    def is_authenticated(self) -> bool: ...

    @property
    def user_id(self) -> UUID | None: ...

    @property
    def access_token(self) -> str | None: ...


@dataclass
class StaticAuth:
    """Session with a fixed account id and access token."""

    user_id: UUID | None = None
    access_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None and bool(self.access_token)

    def sign_out(self) -> None:
        self.user_id = None
        self.access_token = None
