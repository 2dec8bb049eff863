# -*- coding: utf-8 -*-
"""Agregação do período e relatório (tela + CSV)."""
from __future__ import annotations
import re
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, time as dtime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from models import (ClockEvent, ClockType, DailyRow, Employee, EventRow,
                    PeriodSummary, STATUS_LABELS, WorkDetails, WorkStatus)
from utils import (format_date_br, format_decimal_br, format_millis,
                   format_time, weekday_br)
from workhours import PayPolicy, calculate_work_details, group_into_shifts, sort_events

ALL_EMPLOYEES = "all"
CSV_BOM = "\ufeff"

EmployeeFilter = Union[int, str, None]

CSV_HEADERS = [
    "Data", "Dia da Semana", "Funcionário",
    "Entrada", "Início Intervalo", "Fim Intervalo", "Saída",
    "Situação", "Horas Normais", "Horas Extras", "Total Horas", "Valor a Pagar",
]

DECLARACAO = [
    "Declaro, para os devidos fins, que todas as informações constantes neste relatório "
    "correspondem fielmente aos dias, horários e atividades por mim realizadas, sem qualquer omissão.",
    "Reconheço que este documento reflete a totalidade das horas efetivamente trabalhadas na condição "
    "de prestador de serviços eventual, sem vínculo empregatício, e que estou ciente de que o pagamento "
    "será realizado com base nas horas aqui registradas.",
    "Declaro ainda que li e conferi os registros antes da assinatura, concordando integralmente com "
    "seu conteúdo, assumindo sua veracidade e exatidão.",
    "Por ser expressão da verdade, firmo o presente.",
]


@dataclass(frozen=True)
class ShiftResult:
    employee_id: int
    events: Tuple[ClockEvent, ...]
    details: WorkDetails

    @property
    def day(self) -> date:
        return self.events[0].timestamp.date()


@dataclass(frozen=True)
class PeriodReport:
    summary: PeriodSummary
    event_rows: List[EventRow]
    daily_rows: List[DailyRow]


# ---------------------- Filtro ----------------------
def _matches_employee(employee_filter: EmployeeFilter, employee_id: int) -> bool:
    if employee_filter is None or employee_filter == ALL_EMPLOYEES:
        return True
    return int(employee_filter) == employee_id


def filter_events(all_events: Iterable[ClockEvent], start_date: date, end_date: date,
                  employee_filter: EmployeeFilter = ALL_EMPLOYEES) -> List[ClockEvent]:
    start = datetime.combine(start_date, dtime.min)
    end = datetime.combine(end_date, dtime.max)
    return [
        e for e in all_events
        if start <= e.timestamp <= end and _matches_employee(employee_filter, e.employee_id)
    ]


def group_by_employee(events: Iterable[ClockEvent]) -> "OrderedDict[int, List[ClockEvent]]":
    groups: Dict[int, List[ClockEvent]] = {}
    for e in events:
        groups.setdefault(e.employee_id, []).append(e)
    return OrderedDict(sorted(groups.items()))


def compute_shifts(events: Iterable[ClockEvent], policy: Optional[PayPolicy] = None) -> List[ShiftResult]:
    results: List[ShiftResult] = []
    for employee_id, emp_events in group_by_employee(events).items():
        for shift in group_into_shifts(emp_events, policy):
            results.append(ShiftResult(
                employee_id=employee_id,
                events=tuple(shift),
                details=calculate_work_details(shift, policy),
            ))
    return results


def _summarize(shifts: Sequence[ShiftResult]) -> PeriodSummary:
    normal = extra = complete = other = 0
    payment = 0.0
    for s in shifts:
        if s.details.is_complete:
            normal += s.details.normal
            extra += s.details.extra
            payment += s.details.payment.total
            complete += 1
        else:
            other += 1
    return PeriodSummary(normal=normal, extra=extra, payment=payment,
                         complete_shifts=complete, other_shifts=other)


# ---------------------- API do núcleo ----------------------
def summarize_period(all_events: Iterable[ClockEvent], start_date: date, end_date: date,
                     employee_filter: EmployeeFilter = ALL_EMPLOYEES,
                     policy: Optional[PayPolicy] = None) -> PeriodSummary:
    filtered = filter_events(all_events, start_date, end_date, employee_filter)
    return _summarize(compute_shifts(filtered, policy))


def build_report_rows(all_events: Iterable[ClockEvent], start_date: date, end_date: date,
                      employee_filter: EmployeeFilter = ALL_EMPLOYEES,
                      policy: Optional[PayPolicy] = None) -> List[EventRow]:
    filtered = filter_events(all_events, start_date, end_date, employee_filter)
    return _event_rows(compute_shifts(filtered, policy))


def build_daily_rows(all_events: Iterable[ClockEvent], start_date: date, end_date: date,
                     employee_filter: EmployeeFilter = ALL_EMPLOYEES,
                     employees: Iterable[Employee] = (),
                     policy: Optional[PayPolicy] = None) -> List[DailyRow]:
    filtered = filter_events(all_events, start_date, end_date, employee_filter)
    return _daily_rows(compute_shifts(filtered, policy), filtered, employees)


def build_period_report(all_events: Iterable[ClockEvent], start_date: date, end_date: date,
                        employee_filter: EmployeeFilter = ALL_EMPLOYEES,
                        employees: Iterable[Employee] = (),
                        policy: Optional[PayPolicy] = None) -> PeriodReport:
    """Resumo, linhas por batida e linhas diárias numa única passada."""
    filtered = filter_events(all_events, start_date, end_date, employee_filter)
    shifts = compute_shifts(filtered, policy)
    return PeriodReport(
        summary=_summarize(shifts),
        event_rows=_event_rows(shifts),
        daily_rows=_daily_rows(shifts, filtered, employees),
    )


# ---------------------- Linhas ----------------------
def _event_rows(shifts: Sequence[ShiftResult]) -> List[EventRow]:
    rows: List[EventRow] = []
    for s in shifts:
        last = len(s.events) - 1
        for i, event in enumerate(s.events):
            rows.append(EventRow(
                event=event,
                shift_status=s.details.status,
                details=s.details if i == last else None,
            ))
    rows.sort(key=lambda r: r.event.timestamp)
    return rows


def _employee_names(events: Sequence[ClockEvent], employees: Iterable[Employee]) -> Dict[int, str]:
    names = {e.employee_id: e.employee_name for e in sort_events(events)}
    names.update({emp.id: emp.name for emp in employees if emp.id in names})
    return names


def _first_of(events: Sequence[ClockEvent], type: ClockType) -> Optional[datetime]:
    for e in events:
        if e.type is type:
            return e.timestamp
    return None


def _daily_rows(shifts: Sequence[ShiftResult], filtered: Sequence[ClockEvent],
                employees: Iterable[Employee]) -> List[DailyRow]:
    names = _employee_names(filtered, employees)
    by_employee: Dict[int, Dict[date, List[ShiftResult]]] = {}
    for s in shifts:
        by_employee.setdefault(s.employee_id, {}).setdefault(s.day, []).append(s)

    rows: List[DailyRow] = []
    grand_normal = grand_extra = 0
    grand_payment = 0.0
    for emp_id in sorted(by_employee, key=lambda i: (names[i].casefold(), i)):
        name = names[emp_id]
        sub_normal = sub_extra = 0
        sub_payment = 0.0
        for day in sorted(by_employee[emp_id]):
            day_shifts = by_employee[emp_id][day]
            day_events = sort_events(e for s in day_shifts for e in s.events)
            complete = [s.details for s in day_shifts if s.details.is_complete]
            normal = sum(d.normal for d in complete)
            extra = sum(d.extra for d in complete)
            payment = sum(d.payment.total for d in complete)
            rows.append(DailyRow(
                kind="day",
                employee_name=name,
                day=day,
                entrada=_first_of(day_events, ClockType.ENTRADA),
                inicio_intervalo=_first_of(day_events, ClockType.INICIO_INTERVALO),
                fim_intervalo=_first_of(day_events, ClockType.FIM_INTERVALO),
                saida=_first_of(day_events, ClockType.SAIDA),
                normal=normal,
                extra=extra,
                payment=payment,
                statuses=tuple(s.details.status for s in day_shifts),
            ))
            sub_normal += normal
            sub_extra += extra
            sub_payment += payment
        rows.append(DailyRow(kind="subtotal", employee_name=name,
                             normal=sub_normal, extra=sub_extra, payment=sub_payment))
        grand_normal += sub_normal
        grand_extra += sub_extra
        grand_payment += sub_payment

    if rows:
        rows.append(DailyRow(kind="total", employee_name="",
                             normal=grand_normal, extra=grand_extra, payment=grand_payment))
    return rows


# ---------------------- Apresentação / CSV ----------------------
def status_text(statuses: Iterable[WorkStatus]) -> str:
    pending = []
    for st in statuses:
        label = STATUS_LABELS[st]
        if st is not WorkStatus.COMPLETE and label not in pending:
            pending.append(label)
    return ", ".join(pending) if pending else STATUS_LABELS[WorkStatus.COMPLETE]


def _time_cell(value: Optional[datetime], day: Optional[date]) -> str:
    if value is None:
        return ""
    if day is not None and value.date() != day:
        return f"{format_time(value)} ({value.strftime('%d/%m')})"
    return format_time(value)


def daily_row_cells(row: DailyRow) -> List[str]:
    totals = [
        format_millis(row.normal),
        format_millis(row.extra),
        format_millis(row.total),
        format_decimal_br(row.payment),
    ]
    if row.kind == "subtotal":
        return ["", "", f"Subtotal {row.employee_name}", "", "", "", "", ""] + totals
    if row.kind == "total":
        return ["", "", "TOTAL GERAL", "", "", "", "", ""] + totals
    return [
        format_date_br(row.day),
        weekday_br(row.day),
        row.employee_name,
        _time_cell(row.entrada, row.day),
        _time_cell(row.inicio_intervalo, row.day),
        _time_cell(row.fim_intervalo, row.day),
        _time_cell(row.saida, row.day),
        status_text(row.statuses),
    ] + totals


def daily_rows_to_frame(rows: Sequence[DailyRow]) -> pd.DataFrame:
    return pd.DataFrame([daily_row_cells(r) for r in rows], columns=CSV_HEADERS)


def event_rows_to_frame(rows: Sequence[EventRow]) -> pd.DataFrame:
    data = []
    for r in rows:
        d = r.details
        data.append({
            "ID": r.event.id,
            "Data": format_date_br(r.event.timestamp),
            "Dia da Semana": weekday_br(r.event.timestamp),
            "Funcionário": r.event.employee_name,
            "Tipo": r.event.type.value,
            "Horário": format_time(r.event.timestamp),
            "Situação": STATUS_LABELS[r.shift_status],
            "Total Turno": format_millis(d.total) if d is not None and d.is_complete else "",
            "Valor Turno": format_decimal_br(d.payment.total) if d is not None and d.is_complete else "",
        })
    return pd.DataFrame(data, columns=["ID", "Data", "Dia da Semana", "Funcionário", "Tipo",
                                       "Horário", "Situação", "Total Turno", "Valor Turno"])


def to_csv_text(rows: Sequence[DailyRow], declaration_for: Optional[Employee] = None) -> str:
    """CSV com BOM (Excel), aspas duplicadas dentro de campos entre aspas."""
    df = daily_rows_to_frame(rows)
    if declaration_for is not None:
        blank = [""] * len(CSV_HEADERS)
        extra = [blank, blank]
        extra += [[line] + [""] * (len(CSV_HEADERS) - 1) for line in DECLARACAO]
        extra += [blank,
                  [f"Nome do Prestador: {declaration_for.name}"] + blank[1:],
                  blank,
                  ["Assinatura: __________________________________________________"] + blank[1:],
                  ["Data: _______/_______/__________"] + blank[1:]]
        df = pd.concat([df, pd.DataFrame(extra, columns=CSV_HEADERS)], ignore_index=True)
    return CSV_BOM + df.to_csv(index=False, lineterminator="\n")


def report_filename(start_date: date, end_date: date, employee: Optional[Employee] = None) -> str:
    who = re.sub(r"\s+", "_", employee.name.strip()) if employee else "todos"
    return f"relatorio_ponto_{who}_{start_date.isoformat()}_a_{end_date.isoformat()}.csv"
