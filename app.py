# app.py

import logging
from typing import Any

import pandas as pd
import plotly.express as px
import streamlit as st

from core.auth_service import (
    AuthServiceError,
    SessionWatcher,
    can_operate,
    fetch_role,
    send_magic_link,
    session_user_id,
    sign_out,
    verify_email_code,
    verify_email_link,
)
from core.catalog import (
    DEFAULT_LOT,
    DEFAULT_MOVEMENT,
    DEFAULT_SIZE,
    DEFAULT_UNITS,
    DEFAULT_YEAR,
    Lot,
    MovementType,
    PackageSize,
    compute_quantity_ml,
    movement_label,
    size_label,
)
from core.data_repository import BackendConfigError, BackendError, get_session_client
from core.inventory_service import (
    EMPTY_STOCK_MESSAGE,
    MovementValidationError,
    STOCK_COLUMNS,
    build_draft,
    format_quantity,
    load_stock,
    load_warehouses,
    record_movement,
    stock_by_size,
    summarize_stock,
    warehouse_names,
)
from core.repositories import ALL_WAREHOUSES
from core.settings import AppSettings

SETTINGS = AppSettings.load()

logging.basicConfig(
    level=getattr(logging, SETTINGS.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("oil_storage.app")

APP_TITLE = "Gestione Olio — oil-storage"

_STOCK_HEADERS = {
    "warehouse": "Magazzino",
    "year": "Annata",
    "lot": "Lotto",
    "size": "Formato",
    "qty_ml": "Giacenza (ml)",
    "approx_units": "≈ Unità",
}

# Chiavi di sessione legate all'utente collegato: azzerate all'uscita.
_USER_STATE_KEYS = (
    "loaded_for_user",
    "role",
    "warehouses",
    "stock_df",
    "stock_wh",
    "selected_wh",
    "movement_feedback",
    "otp_email",
    "mv_warehouse",
    "mv_year",
    "mv_lot",
    "mv_size",
    "mv_type",
    "mv_units",
    "mv_note",
)


# ==============================================================================
# --- CALLBACK E CARICAMENTI ---
# ==============================================================================

def _reload_stock(client) -> None:
    """Ricarica le giacenze con il filtro magazzino corrente."""

    selected = st.session_state.get("selected_wh", ALL_WAREHOUSES)
    try:
        st.session_state["stock_df"] = load_stock(client, selected)
    except BackendError as exc:
        # Il filtro torna a quello delle giacenze ancora mostrate.
        st.session_state["selected_wh"] = st.session_state.get("stock_wh", ALL_WAREHOUSES)
        st.session_state["movement_feedback"] = ("error", f"Impossibile caricare le giacenze: {exc}")
        return
    st.session_state["stock_wh"] = selected


def _load_user_context(client, user_id: str) -> None:
    """Ruolo, magazzini e giacenze: una volta per utente collegato."""

    st.session_state["role"] = fetch_role(client, user_id)
    st.session_state["warehouses"] = load_warehouses(client)
    selected = st.session_state.setdefault("selected_wh", ALL_WAREHOUSES)
    st.session_state["stock_df"] = load_stock(client, selected)
    st.session_state["stock_wh"] = selected
    st.session_state["loaded_for_user"] = user_id


def _reset_movement_inputs() -> None:
    st.session_state["mv_units"] = DEFAULT_UNITS
    st.session_state["mv_note"] = ""


def _submit_movement(client) -> None:
    """Registra il movimento compilato; l'esito viene mostrato al rerun."""

    try:
        draft = build_draft(
            warehouse_id=st.session_state.get("mv_warehouse", ""),
            year=st.session_state.get("mv_year", DEFAULT_YEAR),
            lot=st.session_state.get("mv_lot", DEFAULT_LOT.value),
            size=st.session_state.get("mv_size", DEFAULT_SIZE.value),
            movement=st.session_state.get("mv_type", DEFAULT_MOVEMENT.value),
            units=st.session_state.get("mv_units", DEFAULT_UNITS),
            note=st.session_state.get("mv_note", ""),
        )
        result = record_movement(client, draft)
    except (MovementValidationError, BackendError) as exc:
        st.session_state["movement_feedback"] = ("error", str(exc))
        return

    _reset_movement_inputs()
    st.session_state["movement_feedback"] = (
        "success",
        f"Movimento registrato ({format_quantity(result.quantity_ml)} ml).",
    )
    _reload_stock(client)


def _sign_out(client) -> None:
    try:
        sign_out(client)
    except BackendError as exc:
        st.session_state["movement_feedback"] = ("error", f"Uscita non riuscita: {exc}")
        return
    for key in _USER_STATE_KEYS:
        st.session_state.pop(key, None)


def _get_watcher(client) -> SessionWatcher:
    watcher = st.session_state.get("auth_watcher")
    if watcher is None:
        watcher = SessionWatcher(client)
        watcher.start()
        st.session_state["auth_watcher"] = watcher
    return watcher


def _consume_magic_link(client) -> None:
    """Completa l'accesso quando la pagina è aperta dal link email."""

    token_hash = st.query_params.get("token_hash")
    if not token_hash:
        return
    try:
        verify_email_link(client, token_hash)
    except (AuthServiceError, BackendError) as exc:
        st.error(f"Accesso non riuscito: {exc}")
    finally:
        st.query_params.clear()


# ==============================================================================
# --- RENDERING ---
# ==============================================================================

def _show_feedback() -> None:
    feedback = st.session_state.pop("movement_feedback", None)
    if not feedback:
        return
    level, message = feedback
    if level == "success":
        st.success(message)
    else:
        st.error(message)


def render_login(client) -> None:
    with st.form("login_form"):
        email = st.text_input("Email", key="login_email", placeholder="you@example.com")
        submitted = st.form_submit_button("Accedi")

    if submitted:
        try:
            message = send_magic_link(client, email, SETTINGS.email_redirect_url)
        except (AuthServiceError, BackendError) as exc:
            st.error(str(exc))
        else:
            st.session_state["otp_email"] = email.strip()
            st.success(message)

    # Il link email porta anche un codice: utile quando il link apre un'altra scheda.
    if st.session_state.get("otp_email"):
        with st.form("otp_form"):
            code = st.text_input("Codice ricevuto via email", key="otp_code")
            verify = st.form_submit_button("Verifica codice")
        if verify:
            try:
                verify_email_code(client, st.session_state["otp_email"], code)
            except (AuthServiceError, BackendError) as exc:
                st.error(str(exc))
            else:
                st.session_state.pop("otp_email", None)
                st.rerun()


def _stock_display_frame(stock_df: pd.DataFrame) -> pd.DataFrame:
    display = stock_df.reindex(columns=list(STOCK_COLUMNS)).copy()
    display["size"] = display["size"].map(size_label)
    display["qty_ml"] = display["qty_ml"].map(format_quantity)
    display["approx_units"] = display["approx_units"].map(format_quantity)
    return display.rename(columns=_STOCK_HEADERS)


def render_stock_table(stock_df: pd.DataFrame | None) -> None:
    if stock_df is None or stock_df.empty:
        st.info(EMPTY_STOCK_MESSAGE)
        return

    st.dataframe(_stock_display_frame(stock_df), hide_index=True)

    summary = summarize_stock(stock_df)
    col_ml, col_units, col_rows = st.columns(3)
    col_ml.metric("Giacenza totale (ml)", format_quantity(summary["total_ml"]))
    col_units.metric("≈ Unità totali", format_quantity(summary["total_units"]))
    col_rows.metric("Righe", str(summary["rows"]))

    chart_df = stock_by_size(stock_df)
    if not chart_df.empty:
        chart_df["size"] = chart_df["size"].map(size_label)
        fig = px.bar(
            chart_df,
            x="warehouse",
            y="qty_ml",
            color="size",
            barmode="group",
            labels={"warehouse": "Magazzino", "qty_ml": "Giacenza (ml)", "size": "Formato"},
        )
        st.plotly_chart(fig)


def render_movement_form(client, warehouses: list) -> None:
    names_by_id = {warehouse.id: warehouse.name for warehouse in warehouses}
    years = list(SETTINGS.vintage_years)

    st.session_state.setdefault("mv_warehouse", "")
    st.session_state.setdefault("mv_year", DEFAULT_YEAR if DEFAULT_YEAR in years else years[0])
    st.session_state.setdefault("mv_lot", DEFAULT_LOT.value)
    st.session_state.setdefault("mv_size", DEFAULT_SIZE.value)
    st.session_state.setdefault("mv_type", DEFAULT_MOVEMENT.value)
    st.session_state.setdefault("mv_units", DEFAULT_UNITS)
    st.session_state.setdefault("mv_note", "")
    if st.session_state["mv_warehouse"] not in names_by_id:
        st.session_state["mv_warehouse"] = ""

    st.subheader("Registra movimento")
    row_1 = st.columns(3)
    row_1[0].selectbox(
        "Magazzino",
        options=[""] + list(names_by_id),
        format_func=lambda value: names_by_id.get(value, "Seleziona"),
        key="mv_warehouse",
    )
    row_1[1].selectbox("Annata", options=years, key="mv_year")
    row_1[2].selectbox("Lotto", options=[lot.value for lot in Lot], key="mv_lot")

    row_2 = st.columns(3)
    row_2[0].selectbox(
        "Formato",
        options=[size.value for size in PackageSize],
        format_func=size_label,
        key="mv_size",
    )
    row_2[1].selectbox(
        "Tipo",
        options=[movement.value for movement in MovementType],
        format_func=movement_label,
        key="mv_type",
    )
    row_2[2].number_input("Quantità (unità)", min_value=1, step=1, key="mv_units")

    st.text_input("Note", placeholder="es. carico 50 casse", key="mv_note")

    qty_ml = compute_quantity_ml(
        st.session_state["mv_size"],
        int(st.session_state["mv_units"] or DEFAULT_UNITS),
        st.session_state["mv_type"],
    )
    st.button(
        f"Registra (≈ {abs(qty_ml)} ml)",
        key="mv_submit",
        on_click=_submit_movement,
        args=(client,),
    )


def render_dashboard(client, session: Any) -> None:
    user_id = session_user_id(session)
    load_error = None
    if st.session_state.get("loaded_for_user") != user_id:
        try:
            _load_user_context(client, user_id)
        except BackendError as exc:
            load_error = exc

    # Ruolo e uscita restano disponibili anche se i caricamenti falliscono.
    role = st.session_state.get("role")
    col_role, col_exit = st.columns([4, 1])
    col_role.markdown(f"Ruolo: **{role.value if role else '...'}**")
    col_exit.button("Esci", key="sign_out", on_click=_sign_out, args=(client,))

    if load_error is not None:
        st.error(f"Impossibile caricare i dati del magazzino: {load_error}")
        return

    warehouses = st.session_state.get("warehouses", [])
    filter_options = [ALL_WAREHOUSES] + warehouse_names(warehouses)
    if st.session_state.get("selected_wh") not in filter_options:
        st.session_state["selected_wh"] = ALL_WAREHOUSES
    st.selectbox(
        "Magazzino:",
        options=filter_options,
        format_func=lambda value: "Tutti" if value == ALL_WAREHOUSES else value,
        key="selected_wh",
        on_change=_reload_stock,
        args=(client,),
    )

    _show_feedback()
    render_stock_table(st.session_state.get("stock_df"))

    if can_operate(role):
        render_movement_form(client, warehouses)


# ==============================================================================
# --- FLUSSO PRINCIPALE ---
# ==============================================================================

st.set_page_config(page_title="Gestione Olio", page_icon="🫒")
st.title(APP_TITLE)

try:
    supabase_client = get_session_client(st.session_state, SETTINGS)
except BackendConfigError as exc:
    st.error(str(exc))
    st.stop()

_consume_magic_link(supabase_client)

try:
    current = _get_watcher(supabase_client).refresh()
except BackendError as exc:
    logger.warning("Sessione non leggibile: %s", exc)
    current = None

if current is None:
    for state_key in _USER_STATE_KEYS:
        if state_key != "otp_email":
            st.session_state.pop(state_key, None)
    render_login(supabase_client)
else:
    render_dashboard(supabase_client, current)
