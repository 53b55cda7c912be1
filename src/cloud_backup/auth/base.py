"""Auth port.

Exposes the session as a StateStream plus the imperative operations the
orchestrator forwards from the presentation layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from cloud_backup.streams import StateStream

from .state import AuthState, CurrentUser, NotAuthenticated, user_of

RESULT_OK = "ok"
RESULT_CANCELED = "canceled"


class Auth(ABC):
    """Abstract authentication provider.

    Subclasses drive transitions through ``_set_state``; observers subscribe
    to ``state``, which always holds the current AuthState.
    """

    def __init__(self) -> None:
        self._state: StateStream[AuthState] = StateStream(initial=NotAuthenticated())

    @property
    def state(self) -> StateStream[AuthState]:
        return self._state

    @property
    def current_state(self) -> AuthState:
        value = self._state.value
        return value if value is not None else NotAuthenticated()

    @property
    def current_user(self) -> Optional[CurrentUser]:
        return user_of(self._state.value)

    def _set_state(self, state: AuthState) -> None:
        if state != self._state.value:
            self._state.emit(state)

    @abstractmethod
    def start_authentication(self, host_context: Any) -> None:
        """Begin the provider's sign-in flow.

        Args:
            host_context: Whatever the host needs to launch the flow
                (a window, a URL opener, a callable)
        """
        pass

    @abstractmethod
    def handle_external_result(self, request_code: Any, result_code: Any, payload: Any) -> bool:
        """Feed the result of an external sign-in flow back in.

        Returns:
            True if the result belonged to this provider and was handled
        """
        pass

    @abstractmethod
    def logout(self) -> None:
        """End the session. The state moves to NotAuthenticated."""
        pass
