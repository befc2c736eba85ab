"""Accesso via link email, osservazione della sessione e ruoli applicativi."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from supabase import AuthError, Client

from .data_repository import BackendError, wrap_backend_error
from .repositories.users import SupabaseUserRepository

logger = logging.getLogger(__name__)


class Role(str, Enum):
    VIEWER = "viewer"
    OPERATOR = "operator"
    ADMIN = "admin"


OPERATING_ROLES = frozenset({Role.OPERATOR, Role.ADMIN})

MAGIC_LINK_SENT_MESSAGE = "Ti ho inviato un link via email. Aprilo per accedere."


class AuthServiceError(Exception):
    """Errore di validazione lato client prima di contattare il servizio auth."""


def _mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


def parse_role(raw: str | None) -> Role | None:
    if raw is None:
        return None
    try:
        return Role(str(raw).strip().lower())
    except ValueError:
        logger.warning("Ruolo sconosciuto ignorato: %r", raw)
        return None


def can_operate(role: Role | str | None) -> bool:
    """Operatori e amministratori possono registrare movimenti."""

    if role is None:
        return False
    if not isinstance(role, Role):
        role = parse_role(role)
    return role in OPERATING_ROLES


def _call_auth(action: Callable[[], Any]) -> Any:
    try:
        return action()
    except AuthError as exc:
        logger.warning("Chiamata auth fallita: %s", getattr(exc, "message", exc))
        raise wrap_backend_error(exc) from exc


def send_magic_link(client: Client, email: str, redirect_to: str | None = None) -> str:
    """Invia il link di accesso (OTP via email) e restituisce il messaggio per l'utente."""

    cleaned = (email or "").strip()
    if not cleaned:
        raise AuthServiceError("Inserisci un indirizzo email.")

    credentials: dict[str, Any] = {"email": cleaned}
    if redirect_to:
        credentials["options"] = {"email_redirect_to": redirect_to}

    _call_auth(lambda: client.auth.sign_in_with_otp(credentials))
    logger.info("Link di accesso inviato a %s", _mask_email(cleaned))
    return MAGIC_LINK_SENT_MESSAGE


def _session_from_response(response: Any) -> Any:
    session = getattr(response, "session", None) if response is not None else None
    if session is None:
        raise BackendError("Link o codice non valido oppure scaduto.")
    return session


def verify_email_link(client: Client, token_hash: str) -> Any:
    """Completa l'accesso dal parametro `token_hash` presente nel link email."""

    token_hash = (token_hash or "").strip()
    if not token_hash:
        raise AuthServiceError("Link di accesso incompleto.")
    response = _call_auth(
        lambda: client.auth.verify_otp({"token_hash": token_hash, "type": "email"})
    )
    session = _session_from_response(response)
    logger.info("Accesso completato tramite link email")
    return session


def verify_email_code(client: Client, email: str, code: str) -> Any:
    """Completa l'accesso con il codice numerico contenuto nella stessa email."""

    email = (email or "").strip()
    code = (code or "").strip()
    if not email or not code:
        raise AuthServiceError("Inserisci email e codice ricevuto.")
    response = _call_auth(
        lambda: client.auth.verify_otp({"email": email, "token": code, "type": "email"})
    )
    session = _session_from_response(response)
    logger.info("Accesso completato tramite codice per %s", _mask_email(email))
    return session


def current_session(client: Client) -> Any:
    return _call_auth(client.auth.get_session)


def session_user_id(session: Any) -> str | None:
    user = getattr(session, "user", None)
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id else None


def current_user_id(client: Client) -> str | None:
    """Id dell'utente autenticato secondo il servizio auth (non la cache locale)."""

    response = _call_auth(client.auth.get_user)
    user = getattr(response, "user", None) if response is not None else None
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id else None


def sign_out(client: Client) -> None:
    _call_auth(client.auth.sign_out)
    logger.info("Sessione chiusa")


def fetch_role(client: Client, user_id: str | None) -> Role | None:
    if not user_id:
        return None
    role = parse_role(SupabaseUserRepository(client).get_role(user_id))
    logger.debug("Ruolo per %s: %s", user_id, role.value if role else None)
    return role


class SessionWatcher:
    """Mantiene l'ultima sessione nota seguendo i cambi di stato dell'auth."""

    def __init__(self, client: Client):
        self._client = client
        self._session: Any = None
        self._subscription: Any = None

    @property
    def session(self) -> Any:
        return self._session

    def start(self) -> Any:
        """Legge la sessione corrente e si iscrive ai cambi di stato."""

        self._session = current_session(self._client)
        if self._subscription is None:
            self._subscription = self._client.auth.on_auth_state_change(self._on_change)
        return self._session

    def refresh(self) -> Any:
        self._session = current_session(self._client)
        return self._session

    def _on_change(self, event: Any, session: Any) -> None:
        logger.info("Evento auth: %s", getattr(event, "value", event))
        self._session = session

    def unsubscribe(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None


__all__ = [
    "AuthServiceError",
    "MAGIC_LINK_SENT_MESSAGE",
    "Role",
    "SessionWatcher",
    "can_operate",
    "current_session",
    "current_user_id",
    "fetch_role",
    "parse_role",
    "send_magic_link",
    "session_user_id",
    "sign_out",
    "verify_email_code",
    "verify_email_link",
]
