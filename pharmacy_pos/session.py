# pharmacy_pos/session.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

_log = logging.getLogger(__name__)


@dataclass
class SessionUser:
    user_id: str
    name: str
    role: str = "staff"
    tenant_id: Optional[str] = None
    pharmacy_name: Optional[str] = None


class SessionContext:
    """
    Bearer token + signed-in user for one console session.

    Passed explicitly to the API client (never read from globals) so tests
    can run against a fake session. open()/close() bracket its lifetime.
    """

    def __init__(self) -> None:
        self._token: Optional[str] = None
        self._user: Optional[SessionUser] = None

    def open(self, token: str, user: Optional[SessionUser] = None) -> None:
        if not token:
            raise ValueError("A session token is required.")
        self._token = token
        self._user = user
        _log.info("session opened for %s", user.name if user else "<unknown user>")

    def close(self) -> None:
        if self._token is not None:
            _log.info("session closed")
        self._token = None
        self._user = None

    @property
    def is_open(self) -> bool:
        return self._token is not None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[SessionUser]:
        return self._user

    def auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}
