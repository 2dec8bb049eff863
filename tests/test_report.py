# -*- coding: utf-8 -*-
import csv
import io
from datetime import date

import pytest

from conftest import day, ev
from models import ClockType, Employee, PeriodSummary, WorkStatus
from report import (ALL_EMPLOYEES, CSV_BOM, CSV_HEADERS, build_daily_rows, build_period_report,
                    build_report_rows, compute_shifts, filter_events, report_filename,
                    summarize_period, to_csv_text)
from utils import MS_PER_HOUR

E, BS, BE, S = ClockType.ENTRADA, ClockType.INICIO_INTERVALO, ClockType.FIM_INTERVALO, ClockType.SAIDA

START, END = date(2025, 12, 1), date(2025, 12, 31)


@pytest.fixture
def events():
    return (
        day("2025-12-19", "08:00", "12:00", "13:00", "17:00", emp=1)
        + day("2025-12-19", "09:00", "12:30", "13:30", "18:00", emp=2)
        + day("2025-12-19", "08:00", "12:00", emp=3)
        + day("2025-12-18", "08:00", "12:00", "13:00", "19:00", emp=4)
        + [ev(E, "2025-12-20 08:00", emp=1)]
    )


def _parse_csv(text):
    return list(csv.reader(io.StringIO(text[len(CSV_BOM):])))


def test_summary_sums_complete_shifts_only(events):
    s = summarize_period(events, START, END)
    assert s.normal == (8 + 8 + 4 + 8) * MS_PER_HOUR
    assert s.extra == 2 * MS_PER_HOUR
    assert s.total == 30 * MS_PER_HOUR
    assert s.payment == pytest.approx(28 * 8.15 + 2 * 16.30)
    assert s.complete_shifts == 4
    assert s.other_shifts == 1


def test_summary_equals_sum_of_complete_shift_totals(events):
    shifts = compute_shifts(filter_events(events, START, END))
    expected = sum(sh.details.total for sh in shifts if sh.details.status is WorkStatus.COMPLETE)
    assert summarize_period(events, START, END).total == expected


def test_summary_is_idempotent(events):
    assert summarize_period(events, START, END) == summarize_period(events, START, END)


def test_empty_period_is_not_an_error(events):
    s = summarize_period(events, date(2024, 1, 1), date(2024, 1, 31))
    assert s == PeriodSummary()
    assert build_report_rows(events, date(2024, 1, 1), date(2024, 1, 31)) == []
    assert build_daily_rows(events, date(2024, 1, 1), date(2024, 1, 31)) == []


@pytest.mark.parametrize("flt", [4, "4"])
def test_employee_filter(events, flt):
    s = summarize_period(events, START, END, flt)
    assert s.normal == 8 * MS_PER_HOUR
    assert s.extra == 2 * MS_PER_HOUR
    assert s.payment == pytest.approx(97.80)


def test_date_bounds_are_inclusive_whole_days():
    events = [ev(E, "2025-12-19 00:00"), ev(S, "2025-12-19 23:59"), ev(E, "2025-12-20 00:00")]
    kept = filter_events(events, date(2025, 12, 19), date(2025, 12, 19), ALL_EMPLOYEES)
    assert [e.id for e in kept] == [events[0].id, events[1].id]


def test_report_rows_follow_timestamp_order_and_mark_status(events):
    rows = build_report_rows(events, START, END)
    stamps = [r.event.timestamp for r in rows]
    assert stamps == sorted(stamps)
    assert len(rows) == len(events)

    last = rows[-1]
    assert last.event.type is E
    assert last.shift_status is WorkStatus.INCOMPLETE
    assert last.details is not None and last.details.status is WorkStatus.INCOMPLETE

    exits_of_daniel = [r for r in rows if r.event.employee_id == 4 and r.event.type is S]
    assert exits_of_daniel[0].details.total == 10 * MS_PER_HOUR
    entries_of_daniel = [r for r in rows if r.event.employee_id == 4 and r.event.type is E]
    assert entries_of_daniel[0].details is None


def test_daily_rows_grouping_and_totals(events):
    rows = build_daily_rows(events, START, END)
    kinds = [(r.kind, r.employee_name) for r in rows]
    assert kinds == [
        ("day", "Ana Silva"), ("day", "Ana Silva"), ("subtotal", "Ana Silva"),
        ("day", "Bruno Costa"), ("subtotal", "Bruno Costa"),
        ("day", "Carla Dias"), ("subtotal", "Carla Dias"),
        ("day", "Daniel Alves"), ("subtotal", "Daniel Alves"),
        ("total", ""),
    ]
    ana_19, ana_20 = rows[0], rows[1]
    assert ana_19.day == date(2025, 12, 19) and ana_20.day == date(2025, 12, 20)
    assert ana_19.entrada.hour == 8 and ana_19.saida.hour == 17
    assert ana_19.inicio_intervalo.hour == 12 and ana_19.fim_intervalo.hour == 13
    assert ana_20.statuses == (WorkStatus.INCOMPLETE,)
    assert ana_20.total == 0
    assert rows[2].total == 8 * MS_PER_HOUR
    assert rows[-1].normal == 28 * MS_PER_HOUR
    assert rows[-1].extra == 2 * MS_PER_HOUR


def test_daily_rows_use_current_employee_name_for_grouping():
    events = day("2025-12-19", "08:00", "12:00", emp=7, name="Zeca")
    rows = build_daily_rows(events, START, END, employees=[Employee(7, "Abel", "1111", "1")])
    assert rows[0].employee_name == "Abel"


def test_night_shift_exit_is_shown_on_start_day():
    events = [ev(E, "2025-12-19 22:00"), ev(S, "2025-12-20 06:00")]
    rep = build_period_report(events, START, END)
    day_rows = [r for r in rep.daily_rows if r.kind == "day"]
    assert len(day_rows) == 1
    assert day_rows[0].day == date(2025, 12, 19)
    assert day_rows[0].total == 8 * MS_PER_HOUR
    cells = _parse_csv(to_csv_text(rep.daily_rows))
    assert cells[1][6] == "06:00:00 (20/12)"


def test_period_report_matches_individual_calls(events):
    rep = build_period_report(events, START, END)
    assert rep.summary == summarize_period(events, START, END)
    assert rep.event_rows == build_report_rows(events, START, END)
    assert rep.daily_rows == build_daily_rows(events, START, END)


def test_csv_has_bom_header_and_formatted_values(events):
    text = to_csv_text(build_daily_rows(events, START, END, 4))
    assert text.startswith(CSV_BOM)
    rows = _parse_csv(text)
    assert rows[0] == CSV_HEADERS
    assert rows[1][:8] == ["18/12/2025", "quinta-feira", "Daniel Alves",
                           "08:00:00", "12:00:00", "13:00:00", "19:00:00", "Completo"]
    assert rows[1][8:] == ["08h 00m", "02h 00m", "10h 00m", "97,80"]
    assert rows[2][2] == "Subtotal Daniel Alves"
    assert rows[3][2] == "TOTAL GERAL"
    assert rows[3][-1] == "97,80"


def test_csv_quotes_commas_and_quotes():
    events = day("2025-12-19", "08:00", "12:00", emp=9, name='Silva, Ana "Aninha"')
    text = to_csv_text(build_daily_rows(events, START, END))
    assert '"Silva, Ana ""Aninha"""' in text
    assert _parse_csv(text)[1][2] == 'Silva, Ana "Aninha"'


def test_csv_declaration_for_single_employee(events):
    ana = Employee(1, "Ana Silva", "1234", "11987654321")
    text = to_csv_text(build_daily_rows(events, START, END, 1), declaration_for=ana)
    rows = _parse_csv(text)
    assert ["Nome do Prestador: Ana Silva"] == [c for c in rows[-4] if c]
    assert rows[-2][0].startswith("Assinatura:")


def test_report_filename():
    assert report_filename(START, END) == "relatorio_ponto_todos_2025-12-01_a_2025-12-31.csv"
    emp = Employee(1, "Ana  Maria Silva", "1234", "1")
    assert report_filename(START, END, emp) == "relatorio_ponto_Ana_Maria_Silva_2025-12-01_a_2025-12-31.csv"
