from pathlib import Path

from streamlit.testing.v1 import AppTest
from supabase import PostgrestAPIError

from core.auth_service import MAGIC_LINK_SENT_MESSAGE
from core.data_repository import SESSION_CLIENT_KEY
from tests.conftest import build_client
from tests.fake_supabase import make_session

APP_PATH = Path(__file__).resolve().parents[1] / "app.py"


def _app_for(client) -> AppTest:
    at = AppTest.from_file(str(APP_PATH), default_timeout=30)
    at.session_state[SESSION_CLIENT_KEY] = client
    return at


def _button(at: AppTest, label: str):
    return next(button for button in at.button if button.label == label)


def _has_widget(widgets, key: str) -> bool:
    return any(widget.key == key for widget in widgets)


def _permission_denied() -> PostgrestAPIError:
    return PostgrestAPIError(
        {"message": "permission denied for view v_stock_detailed", "code": "42501", "hint": None, "details": None}
    )


def test_missing_configuration_stops_the_page():
    at = AppTest.from_file(str(APP_PATH), default_timeout=30).run()

    assert not at.exception
    assert "SUPABASE_URL" in at.error[0].value
    assert not _has_widget(at.text_input, "login_email")


def test_login_sends_magic_link(anonymous_client):
    at = _app_for(anonymous_client).run()

    at.text_input(key="login_email").input("  mario@example.com ")
    _button(at, "Accedi").click().run()

    assert not at.exception
    assert ("sign_in_with_otp", {"email": "mario@example.com"}) in anonymous_client.auth.calls
    assert at.success[0].value == MAGIC_LINK_SENT_MESSAGE
    assert _has_widget(at.text_input, "otp_code")


def test_login_with_blank_email_shows_error(anonymous_client):
    at = _app_for(anonymous_client).run()

    _button(at, "Accedi").click().run()

    assert at.error[0].value == "Inserisci un indirizzo email."
    assert not any(name == "sign_in_with_otp" for name, _ in anonymous_client.auth.calls)


def test_magic_link_in_url_completes_sign_in():
    client = build_client("operator", signed_in=False)
    client.auth.verified_session = make_session()
    at = _app_for(client)
    at.query_params["token_hash"] = "hash-abc"

    at.run()

    assert not at.exception
    assert ("verify_otp", {"token_hash": "hash-abc", "type": "email"}) in client.auth.calls
    assert "token_hash" not in at.query_params
    assert _has_widget(at.button, "mv_submit")


def test_viewer_sees_stock_but_cannot_record():
    at = _app_for(build_client("viewer")).run()

    assert not at.exception
    assert len(at.dataframe) == 1
    assert len(at.dataframe[0].value) == 3
    assert any("viewer" in block.value for block in at.markdown)
    assert not _has_widget(at.button, "mv_submit")


def test_empty_stock_shows_hint():
    client = build_client("viewer")
    client.tables["v_stock_detailed"] = []

    at = _app_for(client).run()

    assert at.info[0].value == "Nessuna giacenza (registra un carico per iniziare)."
    assert len(at.dataframe) == 0


def test_warehouse_filter_reloads_stock(fake_client):
    at = _app_for(fake_client).run()

    at.selectbox(key="selected_wh").select("Sede").run()

    assert not at.exception
    assert fake_client.queries[-1].filters == [("warehouse", "Sede")]
    assert len(at.dataframe[0].value) == 1


def test_operator_records_movement(fake_client):
    at = _app_for(fake_client).run()

    at.selectbox(key="mv_warehouse").select("wh-1")
    at.number_input(key="mv_units").set_value(3)
    at.button(key="mv_submit").click().run()

    assert not at.exception
    inserts = fake_client.inserts("inventory_movements")
    assert len(inserts) == 1
    assert inserts[0].payload["quantity_ml"] == 1500
    assert inserts[0].payload["product_id"] == "prod-2024-A-500"
    assert inserts[0].payload["user_id"] == "user-1"
    assert at.success[0].value == "Movimento registrato (1.500 ml)."
    assert at.number_input(key="mv_units").value == 1
    assert at.text_input(key="mv_note").value == ""


def test_operator_without_warehouse_gets_error(fake_client):
    at = _app_for(fake_client).run()

    at.button(key="mv_submit").click().run()

    assert at.error[0].value == "Seleziona magazzino e prodotto."
    assert fake_client.inserts() == []


def test_submit_label_shows_absolute_quantity(fake_client):
    at = _app_for(fake_client).run()

    at.selectbox(key="mv_size").select("lt_5")
    at.selectbox(key="mv_type").select("out")
    at.run()

    assert at.button(key="mv_submit").label == "Registra (≈ 5000 ml)"


def test_sign_out_returns_to_login(fake_client):
    at = _app_for(fake_client).run()

    at.button(key="sign_out").click().run()

    assert not at.exception
    assert fake_client.auth.session is None
    assert _has_widget(at.text_input, "login_email")


def test_code_from_email_completes_sign_in():
    client = build_client("operator", signed_in=False)
    client.auth.verified_session = make_session()
    at = _app_for(client).run()

    at.text_input(key="login_email").input("mario@example.com")
    _button(at, "Accedi").click().run()
    at.text_input(key="otp_code").input(" 123456 ")
    _button(at, "Verifica codice").click().run()

    assert not at.exception
    assert (
        "verify_otp",
        {"email": "mario@example.com", "token": "123456", "type": "email"},
    ) in client.auth.calls
    assert _has_widget(at.button, "sign_out")
    assert _has_widget(at.button, "mv_submit")
    assert not _has_widget(at.text_input, "login_email")


def test_movement_reloads_stock_with_current_filter(fake_client):
    at = _app_for(fake_client).run()
    at.selectbox(key="selected_wh").select("Sede").run()

    at.selectbox(key="mv_warehouse").select("wh-2")
    at.button(key="mv_submit").click().run()

    assert not at.exception
    assert len(fake_client.inserts("inventory_movements")) == 1
    last_query = fake_client.queries[-1]
    assert last_query.table == "v_stock_detailed"
    assert last_query.filters == [("warehouse", "Sede")]
    assert at.selectbox(key="selected_wh").value == "Sede"


def test_stock_load_failure_keeps_role_and_sign_out():
    client = build_client("viewer")
    client.errors["v_stock_detailed"] = _permission_denied()

    at = _app_for(client).run()

    assert not at.exception
    assert "permission denied" in at.error[0].value
    assert any("viewer" in block.value for block in at.markdown)
    assert _has_widget(at.button, "sign_out")

    at.button(key="sign_out").click().run()

    assert client.auth.session is None
    assert _has_widget(at.text_input, "login_email")


def test_failed_filter_reload_keeps_previous_filter(fake_client):
    at = _app_for(fake_client).run()
    fake_client.errors["v_stock_detailed"] = _permission_denied()

    at.selectbox(key="selected_wh").select("Sede").run()

    assert not at.exception
    assert at.error[0].value.startswith("Impossibile caricare le giacenze")
    assert at.selectbox(key="selected_wh").value == "all"
    assert len(at.dataframe[0].value) == 3
