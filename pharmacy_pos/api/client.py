# api/client.py
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from ..config import API_TIMEOUT, API_URL
from ..session import SessionContext
from .errors import (
    ApiError,
    GENERIC_FAILURE,
    NotFound,
    SessionExpired,
    ValidationFailed,
    parse_field_errors,
)
from .tasks import CancelToken

_log = logging.getLogger(__name__)

_VALIDATION_STATUSES = (400, 409, 422)


class ApiClient:
    """
    Thin JSON/HTTP client for the pharmacy platform API.

    Every call unwraps the {"success", "data", "error"} envelope and maps
    failures onto the api.errors hierarchy. Calls are blocking; run them
    through TaskRunner from UI code. A CancelToken is checked before the
    request goes out and again when the response arrives.
    """

    def __init__(
        self,
        session: SessionContext,
        base_url: str = API_URL,
        timeout: Optional[float] = API_TIMEOUT,
        http: Optional[requests.Session] = None,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = http or requests.Session()
        self._http.headers.update({"Content-Type": "application/json", "Accept": "application/json"})

    # ---- verbs ------------------------------------------------------------

    def get(self, path: str, params: Optional[dict] = None, token: Optional[CancelToken] = None) -> Any:
        return self._request("GET", path, params=params, token=token)

    def post(self, path: str, payload: Optional[dict] = None, token: Optional[CancelToken] = None) -> Any:
        return self._request("POST", path, json=payload, token=token)

    # ---- internals --------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, *, params=None, json=None,
                 token: Optional[CancelToken] = None) -> Any:
        if token is not None:
            token.raise_if_cancelled()

        # drop None params so "limit=None" never reaches the server
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        _log.debug("%s %s params=%s", method, path, params)
        try:
            resp = self._http.request(
                method,
                self._url(path),
                params=params,
                json=json,
                headers=self.session.auth_headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            _log.warning("%s %s failed: %s", method, path, e)
            raise ApiError(GENERIC_FAILURE) from e

        if token is not None:
            token.raise_if_cancelled()
        return self._unwrap(method, path, resp)

    @staticmethod
    def _error_parts(body: Any) -> tuple[Optional[str], Any]:
        if not isinstance(body, dict):
            return None, None
        err = body.get("error")
        if isinstance(err, dict):
            return err.get("message"), err.get("details")
        if isinstance(err, str):
            return err, body.get("details")
        return body.get("message"), body.get("details")

    def _unwrap(self, method: str, path: str, resp: requests.Response) -> Any:
        try:
            body = resp.json()
        except ValueError:
            body = None

        status = resp.status_code
        if status < 400:
            if isinstance(body, dict) and body.get("success") is False:
                message, _details = self._error_parts(body)
                _log.warning("%s %s -> %s success=false %s", method, path, status, message or "")
                raise ApiError(message or GENERIC_FAILURE, status)
            if isinstance(body, dict) and "data" in body:
                return body["data"]
            return body

        message, details = self._error_parts(body)
        _log.warning("%s %s -> %s %s", method, path, status, message or "")
        if status == 401:
            raise SessionExpired()
        if status == 404:
            raise NotFound(message or "Not found.", status)
        if status in _VALIDATION_STATUSES:
            field_errors = parse_field_errors(details)
            if not message and field_errors:
                message = "; ".join(field_errors.values())
            raise ValidationFailed(message or GENERIC_FAILURE, status, field_errors)
        raise ApiError(message or GENERIC_FAILURE, status)
