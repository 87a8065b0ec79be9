from __future__ import annotations
import logging
import threading
import time
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests

from iot_thermostat.exceptions import AuthError, RemoteError
from iot_thermostat.models import RemoteState

LOGIN_PATH = "/api/iot/login"
DEVICE_PATH = "/api/iot/{device_id}"

class ApiClient:
    """
    Device-side client for the thermostat backend.

    Bearer token obtained from POST /api/iot/login (form: deviceId, secret).
    Tokens are short-lived: refresh() is meant to run on a fixed cadence, and
    any request answered with 401 re-authenticates and is retried once.
    All failures surface as RemoteError (AuthError for rejected logins).
    """

    def __init__(self, root_address: str, device_id: str, device_secret: str,
                 timeout_s: float = 5.0, session: requests.Session | None = None):
        if not root_address or not device_id or device_secret is None:
            raise ValueError("root_address, device_id and device_secret are required")
        self.root_address = root_address.rstrip("/") + "/"
        self.device_id = device_id
        self._secret = device_secret
        self.timeout_s = timeout_s
        self._session = session or requests.Session()
        self._token: Optional[str] = None
        self._token_lock = threading.Lock()
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def token(self) -> Optional[str]:
        return self._token

    def _url(self, path: str) -> str:
        return urljoin(self.root_address, path.lstrip("/"))

    def _remaining(self, deadline: Optional[float], what: str) -> float:
        if deadline is None:
            return self.timeout_s
        left = deadline - time.monotonic()
        if left <= 0:
            raise RemoteError(f"{what}: out of time ({self.timeout_s:.1f}s budget)")
        return left

    def login(self, deadline: Optional[float] = None) -> str:
        try:
            r = self._session.post(
                self._url(LOGIN_PATH),
                data={"deviceId": self.device_id, "secret": self._secret},
                timeout=self._remaining(deadline, "login"),
            )
        except requests.RequestException as exc:
            raise RemoteError(f"login request failed: {exc}") from exc
        if r.status_code != 200:
            raise AuthError(f"login rejected: HTTP {r.status_code}")
        try:
            payload: Any = r.json()
        except ValueError as exc:
            raise AuthError("login response is not JSON") from exc
        if not isinstance(payload, dict):
            raise AuthError(f"unexpected login payload: {type(payload).__name__}")
        token = payload.get("token")
        if not token or not isinstance(token, str):
            raise AuthError("login response carries no token")
        with self._token_lock:
            self._token = token
        self._log.debug("Token refreshed for device %s", self.device_id)
        return token

    def refresh(self) -> None:
        """Periodic token refresh; failures are logged, the next request retries."""
        try:
            self.login()
        except RemoteError as exc:
            self._log.warning("Token refresh failed: %s", exc)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _send(self, method: str, path: str, deadline: Optional[float], **kwargs) -> requests.Response:
        timeout = self._remaining(deadline, f"{method} {path}")
        try:
            return self._session.request(method, self._url(path), headers=self._headers(),
                                         timeout=timeout, **kwargs)
        except requests.RequestException as exc:
            raise RemoteError(f"{method} {path} failed: {exc}") from exc

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        """
        Perform a request; on 401 log in again and retry exactly once.

        Login, send and any retry share one timeout_s budget, so a call never
        blocks longer than timeout_s in total.
        """
        deadline = time.monotonic() + self.timeout_s
        if self._token is None:
            self.login(deadline)
        r = self._send(method, path, deadline, **kwargs)
        if r.status_code == 401:
            self._log.info("%s %s -> 401, re-authenticating", method, path)
            self.login(deadline)
            r = self._send(method, path, deadline, **kwargs)
        if not r.ok:
            raise RemoteError(f"{method} {path} -> HTTP {r.status_code}")
        return r

    def fetch_state(self) -> RemoteState:
        r = self.request("GET", DEVICE_PATH.format(device_id=self.device_id))
        try:
            payload: Any = r.json()
        except ValueError as exc:
            raise RemoteError("device state is not JSON") from exc
        if not isinstance(payload, dict):
            raise RemoteError(f"unexpected device state payload: {type(payload).__name__}")
        return RemoteState.model_validate(payload)

    def push_state(self, current_temp: float) -> None:
        body = {"_id": self.device_id, "currentTemp": round(float(current_temp), 2)}
        self.request("PUT", DEVICE_PATH.format(device_id=self.device_id), json=body)

    def close(self) -> None:
        self._session.close()
