# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime, date
from typing import Iterable, Set, Union
from zoneinfo import ZoneInfo

DEFAULT_TZ = "America/Sao_Paulo"

MS_PER_HOUR = 60 * 60 * 1000

DIAS_SEMANA = ["segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
               "sexta-feira", "sábado", "domingo"]


def get_tz(name: str | None) -> ZoneInfo:
    return ZoneInfo(name or DEFAULT_TZ)


def now_local(tz: ZoneInfo) -> datetime:
    return datetime.now(tz)


def wall_clock_now(tz: ZoneInfo) -> datetime:
    """Horário de parede (sem fuso), como é gravado nas batidas."""
    return now_local(tz).replace(tzinfo=None, microsecond=0)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Lê o horário gravado sem converter fuso: '...Z' ou '+00:00' só são descartados."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1]
        dt = datetime.fromisoformat(text)
    return dt.replace(tzinfo=None)


def format_timestamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S")


def existing_ids_int(records: Iterable[dict]) -> Set[int]:
    s: Set[int] = set()
    for r in records:
        try:
            s.add(int(r.get("id")))
        except (TypeError, ValueError):
            pass
    return s


def generate_decimal_id(existing: Set[int], now: datetime) -> int:
    """Gera ID inteiro baseado em timestamp (ms) e garante unicidade."""
    base = int(now.timestamp() * 1000)
    while base in existing:
        base += 1
    return base


# ---------------------- Formatação ----------------------
def format_millis(total_millis: int) -> str:
    if total_millis < 0:
        return "Erro"
    hours = total_millis // MS_PER_HOUR
    minutes = (total_millis % MS_PER_HOUR) // (60 * 1000)
    return f"{hours:02d}h {minutes:02d}m"


def format_decimal_br(value: float) -> str:
    return f"{value:.2f}".replace(".", ",")


def format_currency(value: float) -> str:
    txt = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {txt}"


def format_date_br(d: Union[date, datetime]) -> str:
    return d.strftime("%d/%m/%Y")


def format_time(dt: datetime) -> str:
    return dt.strftime("%H:%M:%S")


def weekday_br(d: Union[date, datetime]) -> str:
    return DIAS_SEMANA[d.weekday()]
