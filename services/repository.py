# -*- coding: utf-8 -*-
"""CRUD de funcionários e batidas sobre o 'banco' de documentos JSON."""
from __future__ import annotations
import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time as dtime
from typing import Callable, Iterable, List, Optional

import pandas as pd

from config import PIN_LENGTH, Settings
from models import ClockEvent, ClockType, Employee, Snapshot
from services.document_store import DocumentStore, StoreError
from services.github_store import GithubJSONStore
from services.local_store import LocalJSONStore
from utils import existing_ids_int, generate_decimal_id, parse_timestamp
from workhours import allowed_actions

logger = logging.getLogger(__name__)

ADMIN_ID = 999
ADMIN_NAME = "Administrador"


class PontoError(ValueError):
    """Operação recusada por regra de negócio (mensagem exibível ao usuário)."""


class DuplicateEventError(PontoError):
    pass


class InvalidEmployeeError(PontoError):
    pass


class NotFoundError(PontoError):
    pass


@dataclass
class ImportResult:
    added: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)


def open_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "github":
        if not settings.github_token:
            raise StoreError("Falta o GITHUB_TOKEN (PAT) para gravar no GitHub.")
        return GithubJSONStore(
            owner=settings.github_owner,
            repo=settings.github_repo,
            token=settings.github_token,
            branch=settings.github_branch,
        )
    return LocalJSONStore(settings.data_dir)


def open_repository(settings: Settings) -> 'PontoRepository':
    return PontoRepository(
        open_store(settings),
        employees_path=settings.employees_path,
        events_path=settings.events_path,
        admin_pin=settings.admin_pin,
    )


def _same_instant(record: dict, timestamp: datetime) -> bool:
    try:
        return parse_timestamp(record.get("timestamp")) == timestamp
    except (TypeError, ValueError):
        return False


def _sorted_events(data: List[dict]) -> List[dict]:
    return sorted(data, key=lambda r: parse_timestamp(r["timestamp"]))


class PontoRepository:
    def __init__(self, store: DocumentStore, employees_path: str, events_path: str,
                 admin_pin: str = "7531", clock: Callable[[], datetime] = datetime.now) -> None:
        self.store = store
        self.employees_path = employees_path
        self.events_path = events_path
        self.admin = Employee(id=ADMIN_ID, name=ADMIN_NAME, pin=admin_pin, phone="")
        self._clock = clock

    # ---------------------- Leitura ----------------------
    def fetch_employees(self) -> List[Employee]:
        data, _ = self.store.load(self.employees_path)
        return [Employee.from_dict(d) for d in data]

    def fetch_events(self) -> List[ClockEvent]:
        data, _ = self.store.load(self.events_path)
        return sorted((ClockEvent.from_dict(d) for d in data), key=lambda e: e.timestamp)

    def refresh(self) -> Snapshot:
        """Foto imutável de funcionários e batidas para o núcleo de cálculo."""
        return Snapshot(
            employees=tuple(self.fetch_employees()),
            events=tuple(self.fetch_events()),
            fetched_at=self._clock(),
        )

    def authenticate(self, pin: str) -> Optional[Employee]:
        if pin == self.admin.pin:
            return self.admin
        for emp in self.fetch_employees():
            if emp.pin == pin:
                return emp
        return None

    def is_admin(self, employee: Optional[Employee]) -> bool:
        return employee is not None and employee.id == ADMIN_ID

    # ---------------------- Batidas ----------------------
    def add_event(self, employee: Employee, type: ClockType, timestamp: datetime) -> ClockEvent:
        """Grava uma batida; recusa duplicata exata (funcionário, tipo, horário)."""
        type = ClockType(type)
        timestamp = timestamp.replace(microsecond=0, tzinfo=None)
        created: List[ClockEvent] = []

        def mutate(data: List[dict]) -> List[dict]:
            for r in data:
                if (int(r.get("employeeId", -1)) == employee.id and r.get("type") == type.value
                        and _same_instant(r, timestamp)):
                    logger.warning("Batida duplicada recusada: %s %s %s", employee.id, type.value, timestamp)
                    raise DuplicateEventError("Batida duplicada: já existe registro igual para este funcionário.")
            new_id = generate_decimal_id(existing_ids_int(data), self._clock())
            event = ClockEvent.novo(new_id, employee, type, timestamp)
            created[:] = [event]
            data.append(event.to_dict())
            return _sorted_events(data)

        self.store.update_with_retry(
            self.events_path, mutate,
            message=f"Ponto {employee.name} {type.value} {timestamp.isoformat()}",
        )
        logger.info("Batida registrada: %s %s %s", employee.name, type.value, timestamp)
        return created[0]

    def punch(self, employee: Employee, type: ClockType, now: datetime) -> ClockEvent:
        """Batida do quiosque: respeita a sequência Entrada → Intervalo → Saída do dia."""
        type = ClockType(type)
        events = [e for e in self.fetch_events() if e.employee_id == employee.id]
        if type not in allowed_actions(events, now.date()):
            raise PontoError(f'Registro de "{type.value}" não permitido agora.')
        return self.add_event(employee, type, now)

    def add_break(self, employee: Employee, day: date, start: dtime, end: dtime) -> List[ClockEvent]:
        if start >= end:
            raise PontoError("O fim do intervalo deve ser depois do início.")
        return [
            self.add_event(employee, ClockType.INICIO_INTERVALO, datetime.combine(day, start)),
            self.add_event(employee, ClockType.FIM_INTERVALO, datetime.combine(day, end)),
        ]

    def update_event(self, event_id: int, timestamp: Optional[datetime] = None,
                     type: Optional[ClockType] = None) -> ClockEvent:
        if timestamp is None and type is None:
            raise PontoError("Nenhum campo para atualizar.")
        updated: List[ClockEvent] = []

        def mutate(data: List[dict]) -> List[dict]:
            idx = next((i for i, r in enumerate(data) if int(r.get("id", -1)) == event_id), None)
            if idx is None:
                raise NotFoundError("Evento não encontrado.")
            event = ClockEvent.from_dict(data[idx])
            changes = {}
            if timestamp is not None:
                changes["timestamp"] = timestamp.replace(microsecond=0, tzinfo=None)
            if type is not None:
                changes["type"] = ClockType(type)
            event = event.with_changes(**changes)
            for i, r in enumerate(data):
                if (i != idx and int(r.get("employeeId", -1)) == event.employee_id
                        and r.get("type") == event.type.value and _same_instant(r, event.timestamp)):
                    raise DuplicateEventError("A alteração criaria uma batida duplicada.")
            data[idx] = event.to_dict()
            updated[:] = [event]
            return _sorted_events(data)

        self.store.update_with_retry(self.events_path, mutate, message=f"Edita evento {event_id}")
        logger.info("Evento %s alterado", event_id)
        return updated[0]

    def delete_event(self, event_id: int) -> None:
        def mutate(data: List[dict]) -> List[dict]:
            kept = [r for r in data if int(r.get("id", -1)) != event_id]
            if len(kept) == len(data):
                raise NotFoundError("Evento não encontrado.")
            return kept

        self.store.update_with_retry(self.events_path, mutate, message=f"Remove evento {event_id}")
        logger.info("Evento %s removido", event_id)

    # ---------------------- Funcionários ----------------------
    def _validate_employee(self, employee: Employee, others: Iterable[Employee]) -> None:
        if not employee.name.strip() or not employee.pin or not employee.phone.strip():
            raise InvalidEmployeeError("Preencha nome, telefone e PIN.")
        if len(employee.pin) != PIN_LENGTH or not employee.pin.isdigit():
            raise InvalidEmployeeError(f"O PIN deve ter {PIN_LENGTH} dígitos.")
        if employee.pin == self.admin.pin:
            raise InvalidEmployeeError(f"O PIN {self.admin.pin} é reservado para o administrador.")
        for other in others:
            if other.id != employee.id and other.pin == employee.pin:
                raise InvalidEmployeeError(f"O PIN {employee.pin} já está em uso por {other.name}.")

    def add_employee(self, name: str, pin: str, phone: str, cpf: Optional[str] = None,
                     funcao: Optional[str] = None, pix: Optional[str] = None) -> Employee:
        created: List[Employee] = []

        def mutate(data: List[dict]) -> List[dict]:
            current = [Employee.from_dict(d) for d in data]
            new_id = max((e.id for e in current), default=0) + 1
            emp = Employee(id=new_id, name=name.strip(), pin=pin.strip(), phone=phone.strip(),
                           cpf=cpf or None, funcao=funcao or None, pix=pix or None)
            self._validate_employee(emp, current)
            created[:] = [emp]
            data.append(emp.to_dict())
            return data

        self.store.update_with_retry(self.employees_path, mutate, message=f"Cadastra funcionário {name}")
        logger.info("Funcionário cadastrado: %s", name)
        return created[0]

    def update_employee(self, employee: Employee) -> Employee:
        """Atualiza o cadastro. Batidas antigas mantêm o nome gravado na época."""
        def mutate(data: List[dict]) -> List[dict]:
            current = [Employee.from_dict(d) for d in data]
            if not any(e.id == employee.id for e in current):
                raise NotFoundError("Funcionário não encontrado.")
            self._validate_employee(employee, current)
            return [employee.to_dict() if e.id == employee.id else d for e, d in zip(current, data)]

        self.store.update_with_retry(self.employees_path, mutate,
                                     message=f"Atualiza funcionário {employee.id}")
        logger.info("Funcionário %s atualizado", employee.id)
        return employee

    def delete_employee(self, employee_id: int) -> None:
        """Remove o funcionário e todas as suas batidas."""
        self.store.update_with_retry(
            self.events_path,
            lambda data: [r for r in data if int(r.get("employeeId", -1)) != employee_id],
            message=f"Remove batidas do funcionário {employee_id}",
        )

        def mutate(data: List[dict]) -> List[dict]:
            kept = [d for d in data if int(d.get("id", -1)) != employee_id]
            if len(kept) == len(data):
                raise NotFoundError("Funcionário não encontrado.")
            return kept

        self.store.update_with_retry(self.employees_path, mutate,
                                     message=f"Remove funcionário {employee_id}")
        logger.info("Funcionário %s removido (com batidas)", employee_id)

    def import_employees(self, csv_text: str) -> ImportResult:
        """Importa CSV com cabeçalho Nome,telefone,Pin (vírgula ou ponto e vírgula).

        PIN já cadastrado atualiza nome e telefone; PIN novo cadastra. Qualquer erro
        cancela a importação inteira.
        """
        result = ImportResult()
        text = csv_text.lstrip("\ufeff").strip()
        if not text:
            result.errors.append("Arquivo CSV vazio ou inválido.")
            return result

        header = text.splitlines()[0]
        sep = ";" if ";" in header else ","
        n_cols = len(header.split(sep))
        try:
            # colunas extras no fim da linha são ignoradas
            df = pd.read_csv(io.StringIO(text), sep=sep, dtype=str, keep_default_na=False,
                             skip_blank_lines=True, engine="python", index_col=False,
                             on_bad_lines=lambda fields: fields[:n_cols])
        except (pd.errors.ParserError, pd.errors.EmptyDataError, csv.Error) as e:
            logger.warning("CSV de funcionários ilegível: %s", e)
            result.errors.append(f"Arquivo CSV vazio ou inválido: {e}")
            return result
        df = df.fillna("")
        df.columns = [str(c).strip().lower() for c in df.columns]
        if not {"nome", "telefone", "pin"} <= set(df.columns):
            result.errors.append("Cabeçalho do CSV inválido. Esperado: Nome,telefone,Pin")
            return result

        rows = []
        for i, row in enumerate(df.itertuples(index=False), start=2):
            name = str(getattr(row, "nome")).strip()
            phone = str(getattr(row, "telefone")).strip()
            pin = str(getattr(row, "pin")).strip()
            if not name or not phone or not pin:
                result.errors.append(f"Linha {i} inválida: campos vazios.")
            elif len(pin) != PIN_LENGTH or not pin.isdigit():
                result.errors.append(f"Linha {i}: PIN deve ter {PIN_LENGTH} dígitos.")
            else:
                rows.append((name, phone, pin))

        pins = [p for _, _, p in rows]
        if len(pins) != len(set(pins)):
            result.errors.append("O arquivo CSV contém PINs duplicados.")
        if self.admin.pin in pins:
            result.errors.append(f"O PIN {self.admin.pin} é reservado para o administrador.")
        if not rows and not result.errors:
            result.errors.append("Nenhum funcionário válido encontrado no arquivo.")
        if result.errors:
            return result

        def mutate(data: List[dict]) -> List[dict]:
            result.added = result.updated = 0
            current = [Employee.from_dict(d) for d in data]
            next_id = max((e.id for e in current), default=0) + 1
            by_pin = {e.pin: i for i, e in enumerate(current)}
            for name, phone, pin in rows:
                if pin in by_pin:
                    idx = by_pin[pin]
                    data[idx] = {**data[idx], "name": name, "phone": phone}
                    result.updated += 1
                else:
                    data.append(Employee(id=next_id, name=name, pin=pin, phone=phone).to_dict())
                    next_id += 1
                    result.added += 1
            return data

        self.store.update_with_retry(self.employees_path, mutate, message="Importa funcionários (CSV)")
        logger.info("Importação: %d adicionado(s), %d atualizado(s)", result.added, result.updated)
        return result

    # ---------------------- Backup ----------------------
    def export_backup(self) -> dict:
        snapshot = self.refresh()
        return {
            "exportedAt": snapshot.fetched_at.isoformat(),
            "employees": [e.to_dict() for e in snapshot.employees],
            "events": [e.to_dict() for e in snapshot.events],
        }

    def restore_backup(self, backup: dict) -> Snapshot:
        """Substitui todos os funcionários e batidas pelo conteúdo do backup."""
        employees = backup.get("employees") if isinstance(backup, dict) else None
        events = backup.get("events") if isinstance(backup, dict) else None
        if not isinstance(employees, list):
            raise PontoError("employees deve ser uma lista")
        if not isinstance(events, list):
            raise PontoError("events deve ser uma lista")
        try:
            parsed_employees = [Employee.from_dict(d) for d in employees]
            parsed_events = [ClockEvent.from_dict(d) for d in events]
        except (KeyError, TypeError, ValueError) as e:
            raise PontoError(f"Backup inválido: {e}") from e

        self._check_backup(parsed_employees, parsed_events)

        logger.info("Restaurando backup: %d funcionários, %d eventos",
                    len(parsed_employees), len(parsed_events))
        old_employees: List[dict] = []

        def replace_employees(data: List[dict]) -> List[dict]:
            old_employees[:] = data
            return [e.to_dict() for e in parsed_employees]

        self.store.update_with_retry(self.employees_path, replace_employees,
                                     message="Restaura backup (funcionários)")
        try:
            self.store.update_with_retry(self.events_path,
                                         lambda _: _sorted_events([e.to_dict() for e in parsed_events]),
                                         message="Restaura backup (eventos)")
        except StoreError:
            logger.error("Falha ao restaurar eventos; devolvendo os funcionários anteriores")
            self.store.update_with_retry(self.employees_path, lambda _: list(old_employees),
                                         message="Desfaz restauração (funcionários)")
            raise
        return self.refresh()

    def _check_backup(self, employees: List[Employee], events: List[ClockEvent]) -> None:
        """Aplica ao backup as mesmas regras das gravações normais."""
        ids = [e.id for e in employees]
        if len(ids) != len(set(ids)):
            raise PontoError("Backup inválido: IDs de funcionário repetidos.")
        for emp in employees:
            self._validate_employee(emp, employees)

        event_ids = [e.id for e in events]
        if len(event_ids) != len(set(event_ids)):
            raise PontoError("Backup inválido: IDs de evento repetidos.")
        seen = set()
        for ev in events:
            if ev.employee_id not in ids:
                raise PontoError(f"Backup inválido: evento {ev.id} de funcionário inexistente.")
            key = (ev.employee_id, ev.type, ev.timestamp)
            if key in seen:
                raise DuplicateEventError(f"Backup inválido: batida duplicada ({ev.employee_name} "
                                          f"{ev.type.value} {ev.timestamp:%d/%m/%Y %H:%M:%S}).")
            seen.add(key)
