# -*- coding: utf-8 -*-
from __future__ import annotations
from dataclasses import dataclass, asdict, field, replace
from datetime import datetime, date
from enum import Enum
from typing import Optional, Tuple

from utils import parse_timestamp, format_timestamp


class ClockType(str, Enum):
    ENTRADA = "Entrada"
    INICIO_INTERVALO = "Início Intervalo"
    FIM_INTERVALO = "Fim Intervalo"
    SAIDA = "Saída"


class WorkStatus(str, Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    ERROR = "error"
    NO_ENTRY = "no_entry"


STATUS_LABELS = {
    WorkStatus.COMPLETE: "Completo",
    WorkStatus.INCOMPLETE: "Incompleto",
    WorkStatus.ERROR: "Erro",
    WorkStatus.NO_ENTRY: "Sem entrada",
}


@dataclass(frozen=True)
class Employee:
    id: int
    name: str
    pin: str     # 4 dígitos
    phone: str
    cpf: Optional[str] = None
    funcao: Optional[str] = None
    pix: Optional[str] = None

    @staticmethod
    def from_dict(d: dict) -> 'Employee':
        return Employee(
            id=int(d["id"]),
            name=str(d.get("name", "")),
            pin=str(d.get("pin", "")),
            phone=str(d.get("phone") or ""),
            cpf=d.get("cpf") or None,
            funcao=d.get("funcao") or None,
            pix=d.get("pix") or None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ClockEvent:
    id: int
    employee_id: int
    employee_name: str   # cópia do nome no momento da batida
    type: ClockType
    timestamp: datetime  # horário de parede, sem fuso

    @staticmethod
    def novo(id_int: int, employee: Employee, type: ClockType, timestamp: datetime) -> 'ClockEvent':
        return ClockEvent(
            id=id_int,
            employee_id=employee.id,
            employee_name=employee.name,
            type=ClockType(type),
            timestamp=timestamp.replace(microsecond=0),
        )

    @staticmethod
    def from_dict(d: dict) -> 'ClockEvent':
        return ClockEvent(
            id=int(d["id"]),
            employee_id=int(d["employeeId"]),
            employee_name=str(d.get("employeeName", "")),
            type=ClockType(d["type"]),
            timestamp=parse_timestamp(d["timestamp"]),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "type": self.type.value,
            "timestamp": format_timestamp(self.timestamp),
        }

    def with_changes(self, **changes) -> 'ClockEvent':
        return replace(self, **changes)

    @property
    def day(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class Payment:
    normal: float = 0.0
    extra: float = 0.0
    total: float = 0.0


@dataclass(frozen=True)
class WorkDetails:
    total: int            # ms
    normal: int           # ms
    extra: int            # ms
    payment: Payment
    status: WorkStatus

    @staticmethod
    def empty(status: WorkStatus) -> 'WorkDetails':
        return WorkDetails(total=0, normal=0, extra=0, payment=Payment(), status=status)

    @property
    def is_complete(self) -> bool:
        return self.status is WorkStatus.COMPLETE

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]


@dataclass(frozen=True)
class PeriodSummary:
    normal: int = 0       # ms
    extra: int = 0        # ms
    payment: float = 0.0
    complete_shifts: int = 0
    other_shifts: int = 0

    @property
    def total(self) -> int:
        return self.normal + self.extra


@dataclass(frozen=True)
class EventRow:
    """Linha da visão plana: uma por batida, na ordem do horário."""
    event: ClockEvent
    shift_status: WorkStatus
    details: Optional[WorkDetails] = None  # só na última batida do turno


@dataclass(frozen=True)
class DailyRow:
    """Linha do CSV: um dia de um funcionário, subtotal ou total geral."""
    kind: str                 # "day" | "subtotal" | "total"
    employee_name: str
    day: Optional[date] = None
    entrada: Optional[datetime] = None
    inicio_intervalo: Optional[datetime] = None
    fim_intervalo: Optional[datetime] = None
    saida: Optional[datetime] = None
    normal: int = 0
    extra: int = 0
    payment: float = 0.0
    statuses: Tuple[WorkStatus, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return self.normal + self.extra


@dataclass(frozen=True)
class Snapshot:
    employees: Tuple[Employee, ...]
    events: Tuple[ClockEvent, ...]
    fetched_at: datetime

    def employee(self, employee_id: int) -> Optional[Employee]:
        for emp in self.employees:
            if emp.id == employee_id:
                return emp
        return None

    def events_of(self, employee_id: int) -> Tuple[ClockEvent, ...]:
        return tuple(e for e in self.events if e.employee_id == employee_id)
