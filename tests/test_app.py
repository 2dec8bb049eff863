# -*- coding: utf-8 -*-
import os

import pytest
import streamlit as st
from streamlit.testing.v1 import AppTest

from services.local_store import LocalJSONStore
from services.repository import PontoRepository

APP_FILE = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "app.py")


@pytest.fixture
def kiosk_repo(tmp_path, monkeypatch):
    data_dir = str(tmp_path / "db")
    monkeypatch.setenv("STORE_BACKEND", "local")
    monkeypatch.setenv("DATA_DIR", data_dir)
    for key in ("EMPLOYEES_PATH", "EVENTS_PATH", "ADMIN_PIN"):
        monkeypatch.delenv(key, raising=False)
    st.cache_data.clear()
    repo = PontoRepository(LocalJSONStore(data_dir), "funcionarios.json", "eventos.json")
    repo.add_employee("Ana Silva", "1234", "11987654321")
    return repo


def _login(pin: str) -> AppTest:
    at = AppTest.from_file(APP_FILE, default_timeout=30)
    at.run()
    at.text_input(key="pin_input").set_value(pin)
    at.button[0].click()
    at.run()
    return at


def test_punch_returns_kiosk_to_login(kiosk_repo):
    at = _login("1234")
    assert at.title[0].value == "Olá, Ana Silva"
    assert at.button(key="btn_SAIDA").disabled

    at.button(key="btn_ENTRADA").click()
    at.run()

    assert at.session_state["user"] is None
    assert at.title[0].value == "🕒 Ponto Eletrônico"
    assert "Entrada" in at.success[0].value
    assert [e.type.value for e in kiosk_repo.fetch_events()] == ["Entrada"]


def test_wrong_pin_stays_on_login(kiosk_repo):
    at = _login("0000")
    assert at.session_state["user"] is None
    assert "PIN inválido" in at.error[0].value
