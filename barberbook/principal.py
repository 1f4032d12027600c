"""Principal abstractions for authenticated callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

Role = Literal["customer", "provider", "admin"]


@runtime_checkable
class Principal(Protocol):
    """Represents the authenticated entity making a request."""

    @property
    def id(self) -> str:
        """Identifier of the user or provider row behind the token."""
        ...

    @property
    def role(self) -> Role:
        ...


@dataclass(frozen=True)
class CustomerPrincipal:
    """Principal backed by a customer ``users`` row."""

    user_id: str

    @property
    def id(self) -> str:
        return self.user_id

    @property
    def role(self) -> Role:
        return "customer"


@dataclass(frozen=True)
class ProviderPrincipal:
    """Principal backed by a ``providers`` row."""

    provider_id: str

    @property
    def id(self) -> str:
        return self.provider_id

    @property
    def role(self) -> Role:
        return "provider"


@dataclass(frozen=True)
class AdminPrincipal:
    """Principal backed by an admin ``users`` row."""

    user_id: str

    @property
    def id(self) -> str:
        return self.user_id

    @property
    def role(self) -> Role:
        return "admin"


def principal_for(role: str, subject: str) -> Principal:
    """Build the principal for a token's ``role`` and ``sub`` claims."""
    if role == "customer":
        return CustomerPrincipal(subject)
    if role == "provider":
        return ProviderPrincipal(subject)
    if role == "admin":
        return AdminPrincipal(subject)
    raise ValueError(f"Unknown principal role: {role}")
