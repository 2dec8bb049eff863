# -*- coding: utf-8 -*-
import pytest

from config import Settings, cfg, load_settings
from services.document_store import StoreError
from services.local_store import LocalJSONStore
from services.repository import open_repository, open_store
from workhours import DEFAULT_POLICY


def test_defaults():
    s = load_settings(secrets={}, environ={})
    assert s == Settings()
    assert s.store_backend == "local"
    assert s.admin_pin == "7531"
    assert s.pay_policy == DEFAULT_POLICY


def test_secrets_take_priority_over_environment():
    secrets = {"ADMIN_PIN": "1111", "REFRESH_SECONDS": 10}
    environ = {"ADMIN_PIN": "2222", "TIMEZONE": "America/Manaus"}
    s = load_settings(secrets=secrets, environ=environ)
    assert s.admin_pin == "1111"
    assert s.refresh_seconds == 10
    assert s.timezone == "America/Manaus"


def test_blank_values_fall_through():
    assert cfg("X", "padrao", secrets={"X": "  "}, environ={"X": ""}) == "padrao"


def test_pay_policy_from_settings():
    s = load_settings(secrets={}, environ={"NORMAL_HOUR_RATE": "10,50", "EXTRA_HOUR_RATE": "21",
                                           "NORMAL_WORK_HOURS": "6", "MERGE_DOUBLE_ENTRY": "false"})
    policy = s.pay_policy
    assert policy.normal_hour_rate == 10.5
    assert policy.extra_hour_rate == 21.0
    assert policy.normal_work_ms == 6 * 3600 * 1000
    assert policy.merge_double_entry is False


def test_invalid_numbers_use_defaults(caplog):
    s = load_settings(secrets={}, environ={"NORMAL_HOUR_RATE": "abc", "REFRESH_SECONDS": "x"})
    assert s.normal_hour_rate == Settings().normal_hour_rate
    assert s.refresh_seconds == Settings().refresh_seconds
    assert "NORMAL_HOUR_RATE" in caplog.text


def test_unknown_backend_falls_back_to_local():
    assert load_settings(secrets={}, environ={"STORE_BACKEND": "s3"}).store_backend == "local"


def test_github_backend_requires_token():
    s = load_settings(secrets={"STORE_BACKEND": "github"}, environ={})
    with pytest.raises(StoreError):
        open_store(s)


def test_local_backend_uses_data_dir(tmp_path):
    s = load_settings(secrets={}, environ={"DATA_DIR": str(tmp_path / "dados")})
    store = open_store(s)
    assert isinstance(store, LocalJSONStore)
    repo = open_repository(s)
    assert repo.fetch_employees() == []
    assert (tmp_path / "dados" / "funcionarios.json").exists()
