import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import requests

from reimburse.core.config import Settings
from reimburse.core.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    RemoteError,
    RequestTimeoutError,
)
from reimburse.core.session import SessionContext
from reimburse.schemas.user import Actor, actor_from_wire


logger = logging.getLogger(__name__)

DEPENDENCY_CODE = "HAS_DEPENDENCIES"
DEPENDENCY_RE = re.compile(r"vinculad|depend|foreign key|constraint|relacionad", re.IGNORECASE)


def _error_body(response: requests.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_message(response: requests.Response, body: Dict[str, Any]) -> str:
    message = body.get("message") or body.get("detail") or response.text or response.reason
    if isinstance(message, list):
        message = "; ".join(str(m) for m in message)
    return str(message or "")


def is_dependency_conflict(response: requests.Response, body: Dict[str, Any]) -> bool:
    if response.status_code == 409:
        return True
    if body.get("code") == DEPENDENCY_CODE:
        return True
    return bool(DEPENDENCY_RE.search(_error_message(response, body)))


class ReimbursementApi:
    """Acceso HTTP a ``/reembolsos``. Sin reintentos: cada llamada es una acción del usuario."""

    def __init__(
        self,
        settings: Settings,
        session_context: SessionContext,
        http: Optional[requests.Session] = None,
    ):
        self.settings = settings
        self.session_context = session_context
        self.http = http or requests.Session()

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        token, _ = self.session_context.credentials()
        url = self.settings.api_root + path
        try:
            response = self.http.request(
                method,
                url,
                json=json,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {token}",
                },
                timeout=self.settings.request_timeout,
            )
        except requests.Timeout as exc:
            logger.error("%s %s timed out after %ss", method, url, self.settings.request_timeout)
            raise RequestTimeoutError() from exc
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise RemoteError(f"Could not reach the server: {exc}") from exc

        if response.ok:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise RemoteError("The server returned an invalid response.") from exc

        body = _error_body(response)
        message = _error_message(response, body)
        logger.error("%s %s -> %s: %s", method, url, response.status_code, message)

        if response.status_code == 401:
            # sin reintento: se descarta la credencial y se vuelve al login
            self.session_context.clear()
            raise AuthError()
        if response.status_code == 403:
            raise ForbiddenError(message or None)
        if method == "DELETE" and is_dependency_conflict(response, body):
            raise ConflictError()
        if response.status_code == 404:
            raise NotFoundError(remote_status=404)
        raise RemoteError(
            f"Error {response.status_code}: {message}" if message else None,
            remote_status=response.status_code,
        )

    def list(self) -> List[Dict[str, Any]]:
        data = self._request("GET", "/reembolsos")
        if data is None:
            return []
        if isinstance(data, dict):
            # algunos despliegues envuelven la lista en {"data": [...]}
            data = data.get("data") or data.get("items") or []
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise RemoteError("The server returned an invalid reimbursement list.")
        return data

    def create(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._request("POST", "/reembolsos", json=payload)

    def update(self, reimbursement_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._request("PATCH", f"/reembolsos/{reimbursement_id}", json=payload)

    def delete(self, reimbursement_id: str) -> None:
        self._request("DELETE", f"/reembolsos/{reimbursement_id}")


class AuthApi:
    def __init__(self, settings: Settings, http: Optional[requests.Session] = None):
        self.settings = settings
        self.http = http or requests.Session()

    def login(self, email: str, password: str) -> Tuple[str, Actor]:
        url = self.settings.api_root + "/auth/login"
        try:
            response = self.http.post(
                url,
                json={"email": email, "senha": password},
                timeout=self.settings.request_timeout,
            )
        except requests.Timeout as exc:
            raise RequestTimeoutError() from exc
        except requests.RequestException as exc:
            logger.error("Login request failed: %s", exc)
            raise RemoteError(f"Could not reach the server: {exc}") from exc

        if response.status_code in (400, 401):
            body = _error_body(response)
            raise InvalidCredentialsError(_error_message(response, body) or None)
        if not response.ok:
            body = _error_body(response)
            raise RemoteError(_error_message(response, body) or None, remote_status=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteError("The server returned an invalid login response.") from exc
        if not isinstance(data, dict):
            raise RemoteError("The server returned an invalid login response.")
        token = data.get("access_token") or data.get("accessToken")
        user = data.get("user")
        if not token or not isinstance(user, dict):
            raise RemoteError("The server returned an invalid login response.")
        return token, actor_from_wire(user)

    def logout(self, token: Optional[str]) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            self.http.post(
                self.settings.api_root + "/auth/logout",
                headers=headers,
                timeout=self.settings.request_timeout,
            )
        except requests.RequestException as exc:
            # el cierre local de sesión no depende del backend
            logger.warning("Logout request failed: %s", exc)
