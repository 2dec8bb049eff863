# -*- coding: utf-8 -*-
"""Reconstrução de turnos e cálculo de horas trabalhadas.

Funções puras sobre listas de batidas já carregadas do banco: não fazem I/O
e não guardam estado, podendo ser chamadas a cada atualização da tela.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from models import ClockEvent, ClockType, Payment, WorkDetails, WorkStatus
from utils import MS_PER_HOUR

DEFAULT_NORMAL_HOUR_RATE = 8.15
DEFAULT_EXTRA_HOUR_RATE = 16.30
DEFAULT_NORMAL_WORK_HOURS = 8

_STARTS_WORK = (ClockType.ENTRADA, ClockType.FIM_INTERVALO)
_STOPS_WORK = (ClockType.SAIDA, ClockType.INICIO_INTERVALO)


@dataclass(frozen=True)
class PayPolicy:
    normal_hour_rate: float = DEFAULT_NORMAL_HOUR_RATE
    extra_hour_rate: float = DEFAULT_EXTRA_HOUR_RATE
    normal_work_ms: int = DEFAULT_NORMAL_WORK_HOURS * MS_PER_HOUR
    # Entrada com turno já aberto: True junta ao turno aberto, False abre outro.
    merge_double_entry: bool = True


DEFAULT_POLICY = PayPolicy()


def sort_events(events: Iterable[ClockEvent]) -> List[ClockEvent]:
    # sorted() é estável: empates mantêm a ordem de entrada
    return sorted(events, key=lambda e: e.timestamp)


def group_into_shifts(events: Iterable[ClockEvent],
                      policy: Optional[PayPolicy] = None) -> List[List[ClockEvent]]:
    """Agrupa as batidas de UM funcionário em turnos (Entrada ... Saída).

    Batidas sem turno aberto que não sejam Entrada viram grupos avulsos de um
    evento só (classificados depois como ``no_entry``); nenhuma batida é
    descartada. O último turno sem Saída é devolvido aberto.
    """
    policy = policy or DEFAULT_POLICY
    shifts: List[List[ClockEvent]] = []
    current: List[ClockEvent] = []
    shift_open = False

    for event in sort_events(events):
        if event.type is ClockType.ENTRADA and shift_open and not policy.merge_double_entry:
            shifts.append(current)
            current = []
            shift_open = False

        if not shift_open:
            if event.type is ClockType.ENTRADA:
                current = [event]
                shift_open = True
            else:
                shifts.append([event])
            continue

        current.append(event)
        if event.type is ClockType.SAIDA:
            shifts.append(current)
            current = []
            shift_open = False

    if current:
        shifts.append(current)
    return shifts


def calculate_work_details(shift_events: Sequence[ClockEvent],
                           policy: Optional[PayPolicy] = None) -> WorkDetails:
    policy = policy or DEFAULT_POLICY
    ordered = sort_events(shift_events)

    total_millis = 0
    last_time = None
    is_working = False

    for event in ordered:
        if is_working and last_time is not None:
            total_millis += _millis_between(last_time, event.timestamp)
        if event.type in _STARTS_WORK:
            is_working = True
        elif event.type in _STOPS_WORK:
            is_working = False
        last_time = event.timestamp

    if not any(e.type is ClockType.ENTRADA for e in ordered):
        return WorkDetails.empty(WorkStatus.NO_ENTRY)

    has_exit = any(e.type is ClockType.SAIDA for e in ordered)
    if is_working or not has_exit:
        return WorkDetails.empty(WorkStatus.INCOMPLETE)

    if total_millis < 0:
        return WorkDetails.empty(WorkStatus.ERROR)

    normal = min(total_millis, policy.normal_work_ms)
    extra = max(0, total_millis - policy.normal_work_ms)

    normal_payment = normal / MS_PER_HOUR * policy.normal_hour_rate
    extra_payment = extra / MS_PER_HOUR * policy.extra_hour_rate

    return WorkDetails(
        total=total_millis,
        normal=normal,
        extra=extra,
        payment=Payment(normal=normal_payment, extra=extra_payment,
                        total=normal_payment + extra_payment),
        status=WorkStatus.COMPLETE,
    )


def _millis_between(start: datetime, end: datetime) -> int:
    return (end - start) // timedelta(milliseconds=1)


def allowed_actions(events: Iterable[ClockEvent], day: date) -> List[ClockType]:
    """Botões liberados no quiosque conforme a última batida do dia."""
    todays = sort_events(e for e in events if e.day == day)
    if not todays:
        return [ClockType.ENTRADA]

    last = todays[-1].type
    if last in (ClockType.ENTRADA, ClockType.FIM_INTERVALO):
        return [ClockType.INICIO_INTERVALO, ClockType.SAIDA]
    if last is ClockType.INICIO_INTERVALO:
        return [ClockType.FIM_INTERVALO]
    return []
