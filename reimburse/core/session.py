# core/session.py
"""
Sesión del panel: token de acceso y perfil del usuario.

Se guarda en un fichero JSON local con las claves fijas ``engnet_token`` y
``engnet_user``. El resto del código recibe un ``SessionContext`` explícito en
vez de leer el almacenamiento por su cuenta.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from reimburse.core.errors import AuthError
from reimburse.core.security import is_token_expired
from reimburse.schemas.user import Actor, actor_from_wire, actor_to_wire

logger = logging.getLogger(__name__)

TOKEN_KEY = "engnet_token"
USER_KEY = "engnet_user"


class SessionStore:
    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Session file %s is unreadable, ignoring it", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, token: str, user: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps({TOKEN_KEY: token, USER_KEY: user}), encoding="utf-8")
        os.replace(tmp, self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class SessionContext:
    def __init__(self, store: SessionStore):
        self.store = store
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._actor: Optional[Actor] = None
        self.refresh()

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def actor(self) -> Optional[Actor]:
        return self._actor

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None and self._actor is not None

    def establish(self, token: str, actor: Actor) -> None:
        with self._lock:
            self._token = token
            self._actor = actor
            self.store.save(token, actor_to_wire(actor))
        logger.info("Session established for %s", actor.email or actor.id)

    def refresh(self) -> None:
        """Vuelve a leer el almacenamiento. Descarta entradas corruptas o tokens caducados."""
        data = self.store.load()
        token = data.get(TOKEN_KEY)
        user = data.get(USER_KEY)
        actor = None
        if token and isinstance(user, dict):
            try:
                actor = actor_from_wire(user)
            except PydanticValidationError:
                logger.warning("Stored user profile is corrupted, discarding session")
        if not token or actor is None or is_token_expired(token):
            if data:
                self.store.clear()
            token, actor = None, None
        with self._lock:
            self._token = token
            self._actor = actor

    def clear(self) -> None:
        with self._lock:
            self._token = None
            self._actor = None
            self.store.clear()

    def credentials(self) -> Tuple[str, Actor]:
        with self._lock:
            token, actor = self._token, self._actor
        if token is None or actor is None:
            raise AuthError()
        if is_token_expired(token):
            self.clear()
            raise AuthError()
        return token, actor

    def require(self) -> Actor:
        return self.credentials()[1]
