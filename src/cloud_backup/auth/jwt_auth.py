"""Auth provider completing sign-in from a signed ID token.

The external flow (browser, OAuth app) returns an HS256 JWT as payload; the
``sub`` claim becomes the user id and therefore the backup namespace.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import jwt

from cloud_backup.logger import Logger, create_logger

from .base import RESULT_OK, Auth
from .state import Authenticated, Authenticating, CurrentUser, NotAuthenticated

DEFAULT_REQUEST_CODE = 4242


class JwtAuth(Auth):
    """JWT-backed authentication provider.

    Example:
        auth = JwtAuth(secret_key="shared-secret")
        auth.start_authentication(lambda code: open_browser(code))
        ...
        # the host calls back with the token returned by the flow
        auth.handle_external_result(4242, "ok", id_token)
    """

    def __init__(
        self,
        secret_key: str,
        request_code: Any = DEFAULT_REQUEST_CODE,
        audience: Optional[str] = None,
        algorithm: str = "HS256",
        logger: Optional[Logger] = None,
    ):
        """
        Args:
            secret_key: Key used to verify the token signature
            request_code: Identifier tying results to this provider's flow
            audience: Expected ``aud`` claim, verified when set
            algorithm: JWT signing algorithm
            logger: Optional logger instance
        """
        super().__init__()
        self._secret_key = secret_key
        self.request_code = request_code
        self.audience = audience
        self.algorithm = algorithm
        self.logger = logger or create_logger("cloud-backup-auth")

    def start_authentication(self, host_context: Any) -> None:
        self._set_state(Authenticating())
        if callable(host_context):
            launch: Callable[[Any], Any] = host_context
            launch(self.request_code)
        self.logger.info("Authentication started", request_code=self.request_code)

    def handle_external_result(self, request_code: Any, result_code: Any, payload: Any) -> bool:
        if request_code != self.request_code:
            return False

        if result_code != RESULT_OK or not payload:
            self.logger.info("Authentication cancelled", result_code=result_code)
            self._set_state(NotAuthenticated())
            return True

        try:
            claims = jwt.decode(
                payload,
                self._secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={
                    "require": ["sub"],
                    "verify_aud": self.audience is not None,
                },
            )
        except jwt.InvalidTokenError as e:
            self.logger.warning("Rejected authentication token", error=str(e))
            self._set_state(NotAuthenticated())
            return True

        user = CurrentUser(
            id=str(claims["sub"]),
            email=claims.get("email"),
            display_name=claims.get("name"),
        )
        self.logger.info("Authenticated", user_id=user.id)
        self._set_state(Authenticated(user))
        return True

    def logout(self) -> None:
        self._set_state(NotAuthenticated())
        self.logger.info("Logged out")
