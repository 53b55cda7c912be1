"""Authentication session model.

An AuthState is one of NotAuthenticated, Authenticating or Authenticated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class CurrentUser:
    """The signed-in user.

    Attributes:
        id: Stable identifier, used as the remote backup namespace
        email: Optional email reported by the provider
        display_name: Optional human-readable name
    """

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None


@dataclass(frozen=True)
class NotAuthenticated:
    pass


@dataclass(frozen=True)
class Authenticating:
    pass


@dataclass(frozen=True)
class Authenticated:
    user: CurrentUser


AuthState = Union[NotAuthenticated, Authenticating, Authenticated]


def user_of(state: Optional[AuthState]) -> Optional[CurrentUser]:
    """Return the signed-in user for an Authenticated state, else None."""
    if isinstance(state, Authenticated):
        return state.user
    return None
