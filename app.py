# -*- coding: utf-8 -*-
"""
Ponto Eletrônico — Streamlit + 'banco' JSON (GitHub REST /contents ou disco local).
- Quiosque: funcionário digita o PIN de 4 dígitos e registra Entrada, Início/Fim de
  Intervalo e Saída (botões liberados conforme a última batida do dia).
- Administrador (PIN reservado): cadastro de funcionários (inclusive via CSV),
  lançamento/edição/exclusão de batidas, relatório do período com horas normais,
  extras e valor a pagar, exportação CSV e backup/restauração.
- Os dados são relidos do banco a cada REFRESH_SECONDS (polling) ou pelo botão Atualizar.

Config: ver config.py (st.secrets → variáveis de ambiente → defaults).
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, time as dtime
from typing import Optional

import pandas as pd
import streamlit as st

from config import PIN_LENGTH, load_settings
from models import ClockType, Employee, Snapshot
from report import (ALL_EMPLOYEES, build_period_report, daily_rows_to_frame,
                    event_rows_to_frame, report_filename, to_csv_text)
from services.document_store import StoreError
from services.repository import PontoError, open_repository
from utils import (format_currency, format_millis, format_time, get_tz,
                   wall_clock_now)
from workhours import allowed_actions

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("ponto")

# ---------------------- Página & Estilo compacto ----------------------
st.set_page_config(page_title="Ponto Eletrônico", page_icon="🕒", layout="centered")

COMPACT_CSS = """
<style>
div.block-container { padding-top: 0.8rem; }
h1, h2, h3 { margin: 0.2rem 0 !important; }
.stButton>button { padding: 0.5rem 0.6rem; font-size: 1rem; }
.stDownloadButton>button { padding: 0.25rem 0.5rem; font-size: 0.85rem; }
.stTable, .stDataFrame { font-size: 13px; }
</style>
"""
st.markdown(COMPACT_CSS, unsafe_allow_html=True)

SETTINGS = load_settings()
TZ = get_tz(SETTINGS.timezone)
POLICY = SETTINGS.pay_policy

try:
    repo = open_repository(SETTINGS)
except StoreError as e:
    st.error(
        f"{e}\n\n"
        "No Streamlit Cloud, vá em *Settings → Secrets* e configure:\n\n"
        "```\n"
        "STORE_BACKEND = \"github\"\n"
        f"GITHUB_OWNER  = \"{SETTINGS.github_owner}\"\n"
        f"GITHUB_REPO   = \"{SETTINGS.github_repo}\"\n"
        "GITHUB_TOKEN  = \"ghp_SEU_TOKEN_AQUI\"\n"
        "```"
    )
    st.stop()


# ---------------------- Carregar dados (polling) ----------------------
@st.cache_data(ttl=SETTINGS.refresh_seconds, show_spinner=False)
def load_snapshot() -> Snapshot:
    return repo.refresh()


def refresh_now():
    load_snapshot.clear()


def current_snapshot() -> Snapshot:
    try:
        return load_snapshot()
    except StoreError as e:
        logger.error("Falha ao carregar dados: %s", e)
        st.error(f"Falha ao carregar dados: {e}")
        st.stop()


# ---------------------- Sessão ----------------------
def _init_session_defaults():
    if "user" not in st.session_state:
        st.session_state["user"] = None
    if "flash" not in st.session_state:
        st.session_state["flash"] = None


_init_session_defaults()


def do_login():
    pin = (st.session_state.get("pin_input") or "").strip()
    st.session_state["pin_input"] = ""
    user = repo.authenticate(pin) if len(pin) == PIN_LENGTH else None
    if user is None:
        st.session_state["flash"] = ("error", "PIN inválido. Tente novamente.")
        return
    logger.info("Login: %s", user.name)
    st.session_state["user"] = user
    st.session_state["flash"] = None


def do_logout():
    st.session_state["user"] = None


def show_flash():
    flash = st.session_state.get("flash")
    if flash:
        kind, msg = flash
        getattr(st, kind)(msg)
        st.session_state["flash"] = None


def run_action(fn, success: str) -> bool:
    """Executa uma gravação mostrando o erro de regra/banco ao usuário."""
    try:
        fn()
    except (PontoError, StoreError) as e:
        st.session_state["flash"] = ("error", str(e))
        return False
    refresh_now()
    st.session_state["flash"] = ("success", success)
    return True


# ---------------------- Telas ----------------------
def login_screen():
    st.title("🕒 Ponto Eletrônico")
    st.subheader(datetime.now(TZ).strftime("%H:%M:%S · %d/%m/%Y"))
    show_flash()
    st.text_input("PIN", key="pin_input", type="password", max_chars=PIN_LENGTH,
                  placeholder="Digite seu PIN")
    st.button("Entrar", type="primary", use_container_width=True, on_click=do_login)


def punch(employee: Employee, type: ClockType):
    now = wall_clock_now(TZ)
    ok = run_action(lambda: repo.punch(employee, type, now),
                    f'Registro de "{type.value}" realizado com sucesso!')
    if ok:
        st.session_state["user"] = None


def clock_screen(employee: Employee):
    st.title(f"Olá, {employee.name}")
    show_flash()

    # fora do fragmento: o clique precisa refazer o app inteiro
    today = wall_clock_now(TZ).date()
    events = current_snapshot().events_of(employee.id)
    enabled = allowed_actions(events, today)
    cols = st.columns(4)
    for col, ctype in zip(cols, ClockType):
        col.button(ctype.value, key=f"btn_{ctype.name}", use_container_width=True,
                   disabled=ctype not in enabled, on_click=punch, args=(employee, ctype))

    @st.fragment(run_every=SETTINGS.refresh_seconds)
    def painel():
        st.caption(datetime.now(TZ).strftime("%H:%M:%S · %d/%m/%Y"))
        st.markdown("---")
        st.subheader("Registros de hoje")
        dia = wall_clock_now(TZ).date()
        todays = [e for e in current_snapshot().events_of(employee.id) if e.day == dia]
        if todays:
            df = pd.DataFrame([{"Tipo": e.type.value, "Hora": format_time(e.timestamp)} for e in todays])
            st.dataframe(df, hide_index=True, use_container_width=True)
        else:
            st.info("Nenhum registro hoje.")

    painel()
    st.button("Sair", on_click=do_logout, use_container_width=True)


# ---------------------- Admin ----------------------
def employee_label(snapshot: Snapshot, emp_id) -> str:
    if emp_id == ALL_EMPLOYEES:
        return "Todos os funcionários"
    emp = snapshot.employee(emp_id)
    return emp.name if emp else str(emp_id)


def report_tab(snapshot: Snapshot):
    today = wall_clock_now(TZ).date()
    c1, c2, c3 = st.columns([1, 1, 1.4])
    with c1:
        start = st.date_input("Início", value=today.replace(day=1), format="DD/MM/YYYY")
    with c2:
        end = st.date_input("Fim", value=today, format="DD/MM/YYYY")
    with c3:
        options = [ALL_EMPLOYEES] + [e.id for e in snapshot.employees]
        selected = st.selectbox("Funcionário", options,
                                format_func=lambda v: employee_label(snapshot, v))

    if start > end:
        st.warning("A data inicial é posterior à final.")
        return

    rep = build_period_report(snapshot.events, start, end, selected, snapshot.employees, POLICY)
    s = rep.summary
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Horas normais", format_millis(s.normal))
    m2.metric("Horas extras", format_millis(s.extra))
    m3.metric("Total", format_millis(s.total))
    m4.metric("A pagar", format_currency(s.payment))
    if s.other_shifts:
        st.caption(f"{s.other_shifts} turno(s) incompleto(s)/com erro não entram no total.")

    if not rep.event_rows:
        st.info("Sem registros no período.")
        return

    st.dataframe(event_rows_to_frame(rep.event_rows), hide_index=True,
                 use_container_width=True, height=280)
    with st.expander("Resumo diário", expanded=False):
        st.dataframe(daily_rows_to_frame(rep.daily_rows), hide_index=True, use_container_width=True)

    employee = snapshot.employee(selected) if selected != ALL_EMPLOYEES else None
    declaration = employee is not None and st.checkbox("Incluir declaração e assinatura do prestador")
    csv = to_csv_text(rep.daily_rows, declaration_for=employee if declaration else None)
    st.download_button("Exportar CSV", data=csv.encode("utf-8"),
                       file_name=report_filename(start, end, employee), mime="text/csv")


def events_tab(snapshot: Snapshot):
    if not snapshot.employees:
        st.info("Cadastre funcionários primeiro.")
        return
    ids = [e.id for e in snapshot.employees]

    st.subheader("Lançamento manual")
    with st.form("manual_event", clear_on_submit=False):
        c1, c2, c3, c4 = st.columns(4)
        emp_id = c1.selectbox("Funcionário", ids, format_func=lambda v: employee_label(snapshot, v))
        dia = c2.date_input("Dia", value=wall_clock_now(TZ).date(), format="DD/MM/YYYY")
        hora = c3.time_input("Hora", value=dtime(9, 0), step=60)
        tipo = c4.selectbox("Tipo", list(ClockType), format_func=lambda t: t.value)
        if st.form_submit_button("Lançar batida"):
            emp = snapshot.employee(emp_id)
            run_action(lambda: repo.add_event(emp, tipo, datetime.combine(dia, hora)),
                       "Batida lançada com sucesso!")
            st.rerun()

    st.subheader("Adicionar intervalo")
    with st.form("add_break"):
        c1, c2, c3, c4 = st.columns(4)
        emp_id = c1.selectbox("Funcionário", ids, key="break_emp",
                              format_func=lambda v: employee_label(snapshot, v))
        dia = c2.date_input("Dia", value=wall_clock_now(TZ).date(), key="break_day", format="DD/MM/YYYY")
        ini = c3.time_input("Início", value=dtime(12, 0), step=60)
        fim = c4.time_input("Fim", value=dtime(13, 0), step=60)
        if st.form_submit_button("Adicionar intervalo"):
            emp = snapshot.employee(emp_id)
            run_action(lambda: repo.add_break(emp, dia, ini, fim), "Intervalo adicionado com sucesso!")
            st.rerun()

    st.subheader("Editar / excluir batida")
    if not snapshot.events:
        st.info("Nenhuma batida registrada.")
        return
    recent = list(reversed(snapshot.events))[:200]
    by_id = {e.id: e for e in recent}
    ev_id = st.selectbox(
        "Batida", list(by_id),
        format_func=lambda i: f"{by_id[i].timestamp.strftime('%d/%m/%Y %H:%M:%S')} · "
                              f"{by_id[i].employee_name} · {by_id[i].type.value}",
    )
    ev = by_id[ev_id]
    with st.form("edit_event"):
        c1, c2, c3 = st.columns(3)
        dia = c1.date_input("Dia", value=ev.timestamp.date(), format="DD/MM/YYYY")
        hora = c2.time_input("Hora", value=ev.timestamp.time(), step=60)
        tipo = c3.selectbox("Tipo", list(ClockType), index=list(ClockType).index(ev.type),
                            format_func=lambda t: t.value)
        b1, b2 = st.columns(2)
        salvar = b1.form_submit_button("Salvar alteração")
        excluir = b2.form_submit_button("Excluir batida")
        if salvar:
            run_action(lambda: repo.update_event(ev.id, datetime.combine(dia, hora), tipo),
                       "Batida alterada.")
            st.rerun()
        if excluir:
            run_action(lambda: repo.delete_event(ev.id), "Batida excluída.")
            st.rerun()


def employees_tab(snapshot: Snapshot):
    if snapshot.employees:
        df = pd.DataFrame([{
            "ID": e.id, "Nome": e.name, "Telefone": e.phone,
            "CPF": e.cpf or "", "Função": e.funcao or "", "PIX": e.pix or "",
        } for e in snapshot.employees])
        st.dataframe(df, hide_index=True, use_container_width=True)

    st.subheader("Cadastrar funcionário")
    with st.form("add_employee", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        nome = c1.text_input("Nome")
        telefone = c2.text_input("Telefone")
        pin = c3.text_input("PIN", type="password", max_chars=PIN_LENGTH)
        c4, c5, c6 = st.columns(3)
        cpf = c4.text_input("CPF (opcional)")
        funcao = c5.text_input("Função (opcional)")
        pix = c6.text_input("PIX (opcional)")
        if st.form_submit_button("Cadastrar"):
            run_action(lambda: repo.add_employee(nome, pin, telefone, cpf, funcao, pix),
                       f"{nome} cadastrado(a).")
            st.rerun()

    if snapshot.employees:
        st.subheader("Editar / excluir")
        emp_id = st.selectbox("Funcionário", [e.id for e in snapshot.employees],
                              format_func=lambda v: employee_label(snapshot, v), key="edit_emp")
        emp = snapshot.employee(emp_id)
        with st.form("edit_employee"):
            c1, c2, c3 = st.columns(3)
            nome = c1.text_input("Nome", value=emp.name)
            telefone = c2.text_input("Telefone", value=emp.phone)
            pin = c3.text_input("PIN", value=emp.pin, type="password", max_chars=PIN_LENGTH)
            c4, c5, c6 = st.columns(3)
            cpf = c4.text_input("CPF", value=emp.cpf or "")
            funcao = c5.text_input("Função", value=emp.funcao or "")
            pix = c6.text_input("PIX", value=emp.pix or "")
            confirma = st.checkbox(f"Confirmo a exclusão de {emp.name} e de todas as suas batidas")
            b1, b2 = st.columns(2)
            if b1.form_submit_button("Salvar"):
                novo = Employee(id=emp.id, name=nome.strip(), pin=pin.strip(), phone=telefone.strip(),
                                cpf=cpf or None, funcao=funcao or None, pix=pix or None)
                run_action(lambda: repo.update_employee(novo), "Cadastro atualizado.")
                st.rerun()
            if b2.form_submit_button("Excluir"):
                if confirma:
                    run_action(lambda: repo.delete_employee(emp.id), f"{emp.name} excluído(a).")
                    st.rerun()
                else:
                    st.warning("Marque a confirmação para excluir.")

    st.subheader("Importar CSV")
    st.caption("Cabeçalho: **Nome,telefone,Pin** (separado por vírgula ou ponto e vírgula).")
    upload = st.file_uploader("Arquivo CSV", type=["csv"], key="csv_import")
    if upload is not None and st.button("Importar"):
        text = upload.getvalue().decode("utf-8", errors="replace")
        try:
            result = repo.import_employees(text)
        except StoreError as e:
            st.error(f"Falha ao salvar: {e}")
            return
        if result.errors:
            st.error(" ".join(result.errors))
        else:
            refresh_now()
            st.success(f"Importação concluída! {result.added} adicionado(s), {result.updated} atualizado(s).")


def backup_tab():
    data = json.dumps(repo.export_backup(), ensure_ascii=False, indent=2)
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    st.download_button("Baixar backup (JSON)", data=data.encode("utf-8"),
                       file_name=f"backup_ponto_eletronico_{stamp}.json", mime="application/json")

    st.subheader("Restaurar backup")
    upload = st.file_uploader("Arquivo de backup", type=["json"], key="backup_file")
    confirma = st.checkbox("Entendo que todos os dados atuais serão substituídos")
    if upload is not None and st.button("Restaurar", disabled=not confirma):
        try:
            payload = json.loads(upload.getvalue().decode("utf-8"))
        except ValueError as e:
            st.error(f"Arquivo inválido: {e}")
            return
        if run_action(lambda: repo.restore_backup(payload), "Backup restaurado."):
            st.rerun()
        show_flash()


def admin_screen(admin: Employee):
    h1, h2, h3 = st.columns([3, 1, 1])
    h1.title("Painel do Administrador")
    h2.button("🔄 Atualizar", on_click=refresh_now, use_container_width=True)
    h3.button("Sair", on_click=do_logout, use_container_width=True)
    show_flash()

    aba_rel, aba_bat, aba_func, aba_bkp = st.tabs(["Relatório", "Batidas", "Funcionários", "Backup"])
    with aba_rel:
        @st.fragment(run_every=SETTINGS.refresh_seconds)
        def relatorio():
            report_tab(current_snapshot())
        relatorio()
    with aba_bat:
        events_tab(current_snapshot())
    with aba_func:
        employees_tab(current_snapshot())
    with aba_bkp:
        backup_tab()


user: Optional[Employee] = st.session_state["user"]
if user is None:
    login_screen()
elif repo.is_admin(user):
    admin_screen(user)
else:
    clock_screen(user)

st.caption(
    f"Banco: {SETTINGS.store_backend} · TZ: {SETTINGS.timezone} · "
    f"Normal R$ {SETTINGS.normal_hour_rate:.2f}/h · Extra R$ {SETTINGS.extra_hour_rate:.2f}/h"
)
