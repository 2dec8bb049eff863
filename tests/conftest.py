# -*- coding: utf-8 -*-
from datetime import datetime
from itertools import count

import pytest

from models import ClockEvent, ClockType, Employee
from services.local_store import LocalJSONStore
from services.repository import PontoRepository

_ids = count(1)

NAMES = {1: "Ana Silva", 2: "Bruno Costa", 3: "Carla Dias", 4: "Daniel Alves"}


def ev(type: ClockType, when: str, emp: int = 1, name: str = None) -> ClockEvent:
    return ClockEvent(
        id=next(_ids),
        employee_id=emp,
        employee_name=name or NAMES.get(emp, f"Func {emp}"),
        type=type,
        timestamp=datetime.strptime(when, "%Y-%m-%d %H:%M"),
    )


def day(d: str, *punches, emp: int = 1, name: str = None):
    """day("2025-12-19", "08:00", "12:00", "13:00", "17:00") -> jornada padrão."""
    types = [ClockType.ENTRADA, ClockType.INICIO_INTERVALO, ClockType.FIM_INTERVALO, ClockType.SAIDA]
    if len(punches) == 2:
        types = [ClockType.ENTRADA, ClockType.SAIDA]
    return [ev(t, f"{d} {p}", emp, name) for t, p in zip(types, punches)]


@pytest.fixture
def store(tmp_path):
    return LocalJSONStore(str(tmp_path / "db"))


@pytest.fixture
def repo(store):
    return PontoRepository(store, employees_path="funcionarios.json", events_path="eventos.json",
                           admin_pin="7531", clock=lambda: datetime(2025, 12, 19, 12, 0, 0))


@pytest.fixture
def ana(repo) -> Employee:
    return repo.add_employee("Ana Silva", "1234", "11987654321")
