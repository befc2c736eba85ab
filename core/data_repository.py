"""Accesso al backend ospitato (Supabase): client per sessione e helper di query."""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Sequence

import pandas as pd
from supabase import AuthError, Client, ClientOptions, PostgrestAPIError, create_client

from .settings import AppSettings

logger = logging.getLogger(__name__)

SESSION_CLIENT_KEY = "supabase_client"


class BackendError(Exception):
    """Errore restituito dal backend ospitato (tabelle/viste o auth)."""

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


class BackendConfigError(BackendError):
    """Sollevata quando URL o chiave anonima del backend mancano."""


def _error_message(exc: Exception) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return str(message).strip() or exc.__class__.__name__


def wrap_backend_error(exc: Exception) -> BackendError:
    """Converte un errore PostgREST/auth nell'eccezione di dominio."""

    code = getattr(exc, "code", None)
    return BackendError(_error_message(exc), code=str(code) if code is not None else None)


def create_supabase_client(settings: AppSettings | None = None) -> Client:
    """Costruisce un client Supabase con refresh automatico e sessione persistente."""

    settings = settings or AppSettings.load()
    if not settings.is_configured:
        logger.error("Variabili Supabase mancanti: SUPABASE_URL / SUPABASE_ANON_KEY")
        raise BackendConfigError(
            "Configurazione mancante: impostare SUPABASE_URL e SUPABASE_ANON_KEY."
        )

    options = ClientOptions(
        auto_refresh_token=settings.auto_refresh_token,
        persist_session=settings.persist_session,
    )
    return create_client(settings.supabase_url, settings.supabase_anon_key, options=options)


def get_session_client(
    store: MutableMapping[str, Any],
    settings: AppSettings | None = None,
) -> Client:
    """Restituisce il client della sessione UI corrente, creandolo alla prima richiesta.

    Ogni sessione del browser ha il proprio client: la sessione auth vive dentro
    il client e non deve mai essere condivisa tra utenti diversi.
    """

    client = store.get(SESSION_CLIENT_KEY)
    if client is None:
        client = create_supabase_client(settings)
        store[SESSION_CLIENT_KEY] = client
    return client


def execute(query: Any) -> Any:
    """Esegue un query builder PostgREST e converte gli errori remoti."""

    try:
        return query.execute()
    except (PostgrestAPIError, AuthError) as exc:
        logger.warning("Richiesta al backend fallita: %s", _error_message(exc))
        raise wrap_backend_error(exc) from exc


def fetch_rows(query: Any) -> list[dict[str, Any]]:
    response = execute(query)
    data = getattr(response, "data", None) if response is not None else None
    if not data:
        return []
    if isinstance(data, dict):
        return [data]
    return [dict(row) for row in data]


def query_df(query: Any, columns: Sequence[str] | None = None) -> pd.DataFrame:
    """Esegue una select e restituisce il risultato come DataFrame pandas."""

    rows = fetch_rows(query)
    if not rows:
        return pd.DataFrame(columns=list(columns or []))
    df = pd.DataFrame.from_records(rows)
    if columns:
        for column in columns:
            if column not in df.columns:
                df[column] = None
        df = df.reindex(columns=list(columns))
    return df


def query_one(query: Any) -> dict[str, Any] | None:
    """Esegue una query `maybe_single()`: una riga come dict oppure None."""

    # Alcune versioni di postgrest restituiscono None invece di una risposta vuota.
    rows = fetch_rows(query)
    return rows[0] if rows else None


def insert_row(client: Client, table: str, row: dict[str, Any]) -> list[dict[str, Any]]:
    """Inserisce una singola riga e restituisce le righe rappresentate dal backend."""

    return fetch_rows(client.table(table).insert(row))
