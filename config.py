# -*- coding: utf-8 -*-
"""Configuração (ordem de prioridade): st.secrets → variáveis de ambiente → defaults.

Secrets recomendados (Streamlit Cloud → Settings → Secrets):
STORE_BACKEND      = "github"            # ou "local"
GITHUB_OWNER       = "meu-usuario"
GITHUB_REPO        = "ponto-db"
GITHUB_BRANCH      = "main"
GITHUB_TOKEN       = "ghp_SEU_TOKEN_AQUI"
EMPLOYEES_PATH     = "funcionarios.json"
EVENTS_PATH        = "eventos.json"
TIMEZONE           = "America/Sao_Paulo"
ADMIN_PIN          = "7531"
NORMAL_HOUR_RATE   = "8.15"
EXTRA_HOUR_RATE    = "16.30"
NORMAL_WORK_HOURS  = "8"
MERGE_DOUBLE_ENTRY = "true"
REFRESH_SECONDS    = "5"
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from utils import DEFAULT_TZ, MS_PER_HOUR
from workhours import (DEFAULT_EXTRA_HOUR_RATE, DEFAULT_NORMAL_HOUR_RATE,
                       DEFAULT_NORMAL_WORK_HOURS, PayPolicy)

logger = logging.getLogger(__name__)

DEFAULT_BACKEND  = "local"
DEFAULT_OWNER    = "meu-usuario"
DEFAULT_REPO     = "ponto-db"
DEFAULT_BRANCH   = "main"
DEFAULT_EMPLOYEES_PATH = "funcionarios.json"
DEFAULT_EVENTS_PATH    = "eventos.json"
DEFAULT_DATA_DIR = "data"
DEFAULT_ADMIN_PIN = "7531"
DEFAULT_REFRESH_SECONDS = 5

PIN_LENGTH = 4

TRUE_VALUES = ("1", "true", "yes", "y", "sim")


def _streamlit_secrets() -> Mapping[str, object]:
    import streamlit as st
    try:
        return st.secrets.to_dict()
    except FileNotFoundError:
        # sem secrets.toml: segue com ambiente/defaults
        return {}


def cfg(key: str, default: str = "", secrets: Optional[Mapping[str, object]] = None,
        environ: Optional[Mapping[str, str]] = None) -> str:
    secrets = _streamlit_secrets() if secrets is None else secrets
    environ = os.environ if environ is None else environ
    if key in secrets:
        val = secrets.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
        if isinstance(val, (int, float, bool)):
            return str(val)
    v = environ.get(key)
    if v and v.strip():
        return v.strip()
    return default


def _as_float(key: str, raw: str, default: float) -> float:
    try:
        return float(raw.replace(",", "."))
    except ValueError:
        logger.warning("Valor inválido para %s=%r; usando %s", key, raw, default)
        return default


def _as_int(key: str, raw: str, default: int) -> int:
    try:
        return int(raw)
    except ValueError:
        logger.warning("Valor inválido para %s=%r; usando %s", key, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    store_backend: str = DEFAULT_BACKEND
    github_owner: str = DEFAULT_OWNER
    github_repo: str = DEFAULT_REPO
    github_branch: str = DEFAULT_BRANCH
    github_token: str = ""
    employees_path: str = DEFAULT_EMPLOYEES_PATH
    events_path: str = DEFAULT_EVENTS_PATH
    data_dir: str = DEFAULT_DATA_DIR
    timezone: str = DEFAULT_TZ
    admin_pin: str = DEFAULT_ADMIN_PIN
    normal_hour_rate: float = DEFAULT_NORMAL_HOUR_RATE
    extra_hour_rate: float = DEFAULT_EXTRA_HOUR_RATE
    normal_work_hours: float = DEFAULT_NORMAL_WORK_HOURS
    merge_double_entry: bool = True
    refresh_seconds: int = DEFAULT_REFRESH_SECONDS

    @property
    def pay_policy(self) -> PayPolicy:
        return PayPolicy(
            normal_hour_rate=self.normal_hour_rate,
            extra_hour_rate=self.extra_hour_rate,
            normal_work_ms=int(self.normal_work_hours * MS_PER_HOUR),
            merge_double_entry=self.merge_double_entry,
        )


def load_settings(secrets: Optional[Mapping[str, object]] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    secrets = _streamlit_secrets() if secrets is None else secrets

    def get(key: str, default: str = "") -> str:
        return cfg(key, default, secrets=secrets, environ=environ)

    backend = get("STORE_BACKEND", DEFAULT_BACKEND).lower()
    if backend not in ("github", "local"):
        logger.warning("STORE_BACKEND=%r desconhecido; usando %s", backend, DEFAULT_BACKEND)
        backend = DEFAULT_BACKEND

    return Settings(
        store_backend=backend,
        github_owner=get("GITHUB_OWNER", DEFAULT_OWNER),
        github_repo=get("GITHUB_REPO", DEFAULT_REPO),
        github_branch=get("GITHUB_BRANCH", DEFAULT_BRANCH),
        github_token=get("GITHUB_TOKEN", ""),
        employees_path=get("EMPLOYEES_PATH", DEFAULT_EMPLOYEES_PATH),
        events_path=get("EVENTS_PATH", DEFAULT_EVENTS_PATH),
        data_dir=get("DATA_DIR", DEFAULT_DATA_DIR),
        timezone=get("TIMEZONE", DEFAULT_TZ),
        admin_pin=get("ADMIN_PIN", DEFAULT_ADMIN_PIN),
        normal_hour_rate=_as_float("NORMAL_HOUR_RATE", get("NORMAL_HOUR_RATE", str(DEFAULT_NORMAL_HOUR_RATE)),
                                   DEFAULT_NORMAL_HOUR_RATE),
        extra_hour_rate=_as_float("EXTRA_HOUR_RATE", get("EXTRA_HOUR_RATE", str(DEFAULT_EXTRA_HOUR_RATE)),
                                  DEFAULT_EXTRA_HOUR_RATE),
        normal_work_hours=_as_float("NORMAL_WORK_HOURS", get("NORMAL_WORK_HOURS", str(DEFAULT_NORMAL_WORK_HOURS)),
                                    DEFAULT_NORMAL_WORK_HOURS),
        merge_double_entry=get("MERGE_DOUBLE_ENTRY", "true").lower() in TRUE_VALUES,
        refresh_seconds=_as_int("REFRESH_SECONDS", get("REFRESH_SECONDS", str(DEFAULT_REFRESH_SECONDS)),
                                DEFAULT_REFRESH_SECONDS),
    )
