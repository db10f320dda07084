from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from .attendance.factory import PunctualityStrategyFactory
from .attendance.memory_session_repository import MemorySessionRepository
from .attendance.mysql_session_repository import MySQLSessionRepository
from .attendance.repository import SessionRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .common.locks import EmployeeLocks
from .core.constants import DEFAULT_HIGH_IMPACT_MINUTES, DEFAULT_MAX_NEGATIVE_BALANCE, DEFAULT_MAX_POSITIVE_BALANCE
from .database.connection import DBConfig, DatabaseConnection
from .database.memory import MemoryStore
from .database.transaction import TransactionManager
from .edits.memory_edit_request_repository import MemoryEditRequestRepository
from .edits.mysql_edit_request_repository import MySQLEditRequestRepository
from .edits.policy import ApprovalPolicy
from .edits.repository import EditRequestRepository
from .edits.service import TimeEditWorkflow
from .identity.provider import MySQLRoleProvider, RoleProvider, StaticRoleProvider
from .ledger.memory_ledger_repository import MemoryLedgerRepository
from .ledger.mysql_ledger_repository import MySQLLedgerRepository
from .ledger.repository import LedgerRepository
from .ledger.service import HourBankLedger
from .schedules.memory_schedule_repository import MemoryScheduleRepository
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.repository import ScheduleRepository
from .schedules.resolver import ScheduleResolver
from .schedules.service import ScheduleService


@dataclass(frozen=True)
class Container:
    transactions: TransactionManager
    locks: EmployeeLocks
    roles: RoleProvider

    schedules_repo: ScheduleRepository
    sessions_repo: SessionRepository
    ledger_repo: LedgerRepository
    edit_requests_repo: EditRequestRepository

    resolver: ScheduleResolver
    schedule_service: ScheduleService
    attendance_service: AttendanceService
    ledger: HourBankLedger
    edit_workflow: TimeEditWorkflow


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return _wire(
        transactions=conn,
        roles=MySQLRoleProvider(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        sessions_repo=MySQLSessionRepository(conn),
        ledger_repo=MySQLLedgerRepository(conn),
        edit_requests_repo=MySQLEditRequestRepository(conn),
        settings=settings,
    )


def build_memory_container(
    *,
    settings: Any = None,
    roles: Optional[RoleProvider] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    store = MemoryStore()
    return _wire(
        transactions=store,
        roles=roles or StaticRoleProvider(),
        schedules_repo=MemoryScheduleRepository(store),
        sessions_repo=MemorySessionRepository(store),
        ledger_repo=MemoryLedgerRepository(store),
        edit_requests_repo=MemoryEditRequestRepository(store),
        settings=settings,
        clock=clock,
    )


def _wire(
    *,
    transactions: TransactionManager,
    roles: RoleProvider,
    schedules_repo: ScheduleRepository,
    sessions_repo: SessionRepository,
    ledger_repo: LedgerRepository,
    edit_requests_repo: EditRequestRepository,
    settings: Any,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    # One lock registry shared by every service, so cross-service calls re-enter the same lock.
    locks = EmployeeLocks()
    resolver = ScheduleResolver(schedules_repo)

    ledger = HourBankLedger(
        ledger_repo,
        transactions=transactions,
        locks=locks,
        clock=clock,
        max_positive_balance=int(getattr(settings, "HOUR_BANK_MAX_POSITIVE_MINUTES", DEFAULT_MAX_POSITIVE_BALANCE)),
        max_negative_balance=int(getattr(settings, "HOUR_BANK_MAX_NEGATIVE_MINUTES", DEFAULT_MAX_NEGATIVE_BALANCE)),
        auto_approve_session_deltas=bool(getattr(settings, "AUTO_APPROVE_SESSION_DELTAS", False)),
    )
    attendance_service = AttendanceService(
        sessions_repo,
        resolver,
        ledger=ledger,
        transactions=transactions,
        locks=locks,
        strategy_factory=PunctualityStrategyFactory(),
        clock=clock,
    )
    edit_workflow = TimeEditWorkflow(
        edit_requests_repo,
        attendance_service,
        ledger,
        roles,
        transactions,
        policy=ApprovalPolicy(
            high_impact_minutes=int(getattr(settings, "HIGH_IMPACT_EDIT_MINUTES", DEFAULT_HIGH_IMPACT_MINUTES)),
        ),
        locks=locks,
        clock=clock,
    )

    return Container(
        transactions=transactions,
        locks=locks,
        roles=roles,
        schedules_repo=schedules_repo,
        sessions_repo=sessions_repo,
        ledger_repo=ledger_repo,
        edit_requests_repo=edit_requests_repo,
        resolver=resolver,
        schedule_service=ScheduleService(schedules_repo, resolver, clock=clock),
        attendance_service=attendance_service,
        ledger=ledger,
        edit_workflow=edit_workflow,
    )
