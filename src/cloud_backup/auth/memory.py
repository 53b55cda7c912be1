"""In-memory auth provider for tests and local tooling.

No external flow: results are supplied directly, either through
handle_external_result or the sign_in helper.
"""

from __future__ import annotations

from typing import Any, Mapping

from .base import RESULT_OK, Auth
from .state import Authenticated, Authenticating, CurrentUser, NotAuthenticated


class MemoryAuth(Auth):
    """Auth whose session lives only in memory.

    Example:
        auth = MemoryAuth()
        auth.sign_in(CurrentUser(id="user-1"))
        auth.current_user.id  # "user-1"
    """

    def __init__(self, request_code: Any = None) -> None:
        super().__init__()
        self.request_code = request_code

    def start_authentication(self, host_context: Any) -> None:
        self._set_state(Authenticating())

    def handle_external_result(self, request_code: Any, result_code: Any, payload: Any) -> bool:
        if self.request_code is not None and request_code != self.request_code:
            return False

        user = None
        if result_code == RESULT_OK:
            if isinstance(payload, CurrentUser):
                user = payload
            elif isinstance(payload, Mapping) and payload.get("id"):
                user = CurrentUser(
                    id=str(payload["id"]),
                    email=payload.get("email"),
                    display_name=payload.get("display_name"),
                )

        self._set_state(Authenticated(user) if user else NotAuthenticated())
        return True

    def sign_in(self, user: CurrentUser) -> None:
        """Jump straight to Authenticated."""
        self._set_state(Authenticated(user))

    def logout(self) -> None:
        self._set_state(NotAuthenticated())
