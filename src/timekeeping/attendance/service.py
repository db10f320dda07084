from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, ContextManager, Iterable, Optional, Protocol, Sequence

from ..common.datetime_utils import now_local, start_of_next_day
from ..common.locks import EmployeeLocks
from ..common.validators import require_non_empty
from ..core.enums import BreakType, ClockRecordType, ClockState, ComplianceFlag, SessionStatus
from ..core.exceptions import (
    AlreadyClockedIn,
    BreakAlreadyActive,
    NoActiveBreak,
    NoActiveSession,
    NotFoundError,
    TimestampBeforeClockIn,
    ValidationError,
)
from ..database.transaction import TransactionManager
from ..schedules.model import BreakConfig, ResolvedDay
from ..schedules.resolver import ScheduleResolver
from .calculator import StandardWorkedTimeCalculator, WorkedTimeCalculator
from .factory import PunctualityStrategyFactory
from .model import BreakRecord, ClockRecord, GeoLocation, TimeClockSession, TodayStats
from .repository import SessionRepository
from .strategies.timing import nearest_shift, shift_end

logger = logging.getLogger(__name__)


class WorkedTimeSink(Protocol):
    """Receives the worked-minute delta of every completed session."""

    def session_closed(self, session: TimeClockSession) -> object:
        raise NotImplementedError


class AttendanceService:
    """Attendance session engine.

    Per employee-day: NotStarted -> Active <-> OnBreak -> Completed, with
    Interrupted reachable from Active/OnBreak through a forced day-close.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        resolver: ScheduleResolver,
        *,
        ledger: Optional[WorkedTimeSink] = None,
        transactions: Optional[TransactionManager] = None,
        locks: Optional[EmployeeLocks] = None,
        strategy_factory: Optional[PunctualityStrategyFactory] = None,
        calculator: Optional[WorkedTimeCalculator] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._sessions = sessions
        self._resolver = resolver
        self._ledger = ledger
        self._transactions = transactions
        self._locks = locks or EmployeeLocks()
        self._factory = strategy_factory or PunctualityStrategyFactory()
        self._calculator = calculator or StandardWorkedTimeCalculator()
        self._clock = clock

    # -------- Clock events --------
    def clock_in(
        self,
        employee_id: int,
        *,
        timestamp: Optional[datetime] = None,
        location: Optional[GeoLocation] = None,
        ip_address: Optional[str] = None,
        is_manual: bool = False,
        manual_reason: Optional[str] = None,
        registered_by: Optional[int] = None,
    ) -> TimeClockSession:
        now = timestamp or self._clock()
        record = self._clock_record(
            now,
            ClockRecordType.CLOCK_IN,
            location=location,
            ip_address=ip_address,
            is_manual=is_manual,
            manual_reason=manual_reason,
            registered_by=registered_by,
        )

        with self._locks.hold(employee_id):
            existing = self._sessions.get(employee_id, now.date())
            if existing:
                if existing.is_open:
                    raise AlreadyClockedIn("Already clocked in today")
                raise AlreadyClockedIn("Today's session is already closed")

            day = self._resolver.resolve(employee_id, now.date())
            shift = nearest_shift(now, day.shifts)
            strategy = self._factory.for_clock_in(now=now, shift=shift, tolerance=day.tolerance)
            decision = strategy.decide_clock_in(now=now, shift=shift, tolerance=day.tolerance)

            session = TimeClockSession(
                session_id=0,
                employee_id=int(employee_id),
                work_date=now.date(),
                clock_in=record,
                status=SessionStatus.ACTIVE,
                expected_minutes=day.expected_minutes,
                is_late=decision.is_late,
                minutes_late=decision.minutes_late,
                flags=decision.flags,
                schedule_id=day.schedule_id,
                created_at=self._clock(),
                updated_at=self._clock(),
            )
            session_id = self._sessions.add(session)
            logger.info(
                "employee %s clocked in at %s (late=%s, minutes_late=%s)",
                employee_id, now.isoformat(), decision.is_late, decision.minutes_late,
            )
            return replace(session, session_id=session_id)

    def start_break(
        self,
        employee_id: int,
        break_type: BreakType = BreakType.LUNCH,
        *,
        timestamp: Optional[datetime] = None,
        break_config_id: Optional[int] = None,
    ) -> TimeClockSession:
        now = timestamp or self._clock()

        with self._locks.hold(employee_id):
            session = self._open_session(employee_id, now)
            if session.active_break:
                raise BreakAlreadyActive("A break is already in progress")
            if now < session.clock_in.timestamp:
                raise TimestampBeforeClockIn("Break cannot start before clock-in")
            if any(b.end_time and b.end_time > now for b in session.breaks):
                raise ValidationError("Break overlaps a previous break")

            day = self._resolver.resolve(employee_id, session.work_date)
            config = self._match_break_config(day, now, break_type, break_config_id)
            record = BreakRecord(
                break_type=break_type,
                start_time=now,
                is_paid=config.is_paid if config else False,
                break_config_id=config.break_id if config else None,
            )
            updated = replace(session, breaks=session.breaks + (record,), updated_at=self._clock())
            self._sessions.save(updated)
            logger.info("employee %s started %s break at %s", employee_id, break_type.value, now.isoformat())
            return updated

    def end_break(self, employee_id: int, *, timestamp: Optional[datetime] = None) -> TimeClockSession:
        now = timestamp or self._clock()

        with self._locks.hold(employee_id):
            session = self._open_session(employee_id, now)
            active = session.active_break
            if not active:
                raise NoActiveBreak("No break in progress")
            if now < active.start_time:
                raise ValidationError("Break cannot end before it starts")

            day = self._resolver.resolve(employee_id, session.work_date)
            closed = self._close_break(active, now, day)
            breaks = tuple(closed if b is active else b for b in session.breaks)
            updated = replace(session, breaks=breaks, updated_at=self._clock())
            self._sessions.save(updated)
            if closed.flags:
                logger.info("employee %s break flagged: %s", employee_id, [f.value for f in closed.flags])
            return updated

    def clock_out(
        self,
        employee_id: int,
        *,
        timestamp: Optional[datetime] = None,
        location: Optional[GeoLocation] = None,
        ip_address: Optional[str] = None,
        is_manual: bool = False,
        manual_reason: Optional[str] = None,
        registered_by: Optional[int] = None,
    ) -> TimeClockSession:
        now = timestamp or self._clock()
        record = self._clock_record(
            now,
            ClockRecordType.CLOCK_OUT,
            location=location,
            ip_address=ip_address,
            is_manual=is_manual,
            manual_reason=manual_reason,
            registered_by=registered_by,
        )

        with self._locks.hold(employee_id), self._transaction():
            session = self._open_session(employee_id, now)
            if now <= session.clock_in.timestamp:
                raise TimestampBeforeClockIn("Clock-out must be after clock-in")

            day = self._resolver.resolve(employee_id, session.work_date)
            closed = self._finalize(replace(session, clock_out=record), end=now, status=SessionStatus.COMPLETED, day=day)
            self._sessions.save(closed)
            if self._ledger is not None:
                self._ledger.session_closed(closed)

            logger.info(
                "employee %s clocked out at %s (worked=%s, expected=%s, overtime=%s)",
                employee_id, now.isoformat(), closed.total_worked_minutes,
                closed.expected_minutes, closed.overtime_minutes,
            )
            return closed

    # -------- Day close --------
    def force_close_day(self, work_date: date, *, boundary: Optional[datetime] = None) -> list[TimeClockSession]:
        """Interrupt every session of work_date still open. Safe to re-run.

        Without an explicit boundary a session is closed at midnight, or at the
        end of its shift (plus exit tolerance) when the shift runs past midnight.
        An overnight session whose shift has not ended yet is left open.
        """
        now = self._clock()
        midnight = start_of_next_day(work_date)
        closed: list[TimeClockSession] = []

        for candidate in self._sessions.list_open(work_date=work_date):
            with self._locks.hold(candidate.employee_id):
                current = self._sessions.get(candidate.employee_id, work_date)
                if current is None or not current.is_open:
                    continue
                end = boundary or self._rollover(current, midnight)
                if boundary is None and end > midnight and end > now:
                    logger.info("session %s is on an overnight shift until %s", current.session_id, end.isoformat())
                    continue
                closed.append(self._interrupt(current, end))

        if closed:
            logger.info("force-closed %s session(s) for %s", len(closed), work_date.isoformat())
        return closed

    def force_close_session(
        self,
        employee_id: int,
        work_date: date,
        *,
        boundary: Optional[datetime] = None,
    ) -> TimeClockSession:
        with self._locks.hold(employee_id):
            session = self._sessions.get(employee_id, work_date)
            if session is None:
                raise NotFoundError(f"No session for employee {employee_id} on {work_date.isoformat()}")
            if not session.is_open:
                return session
            return self._interrupt(session, boundary or self._clock())

    def _rollover(self, session: TimeClockSession, midnight: datetime) -> datetime:
        day = self._resolver.resolve(session.employee_id, session.work_date)
        shift = nearest_shift(session.clock_in.timestamp, day.shifts)
        if shift is None:
            return midnight
        end = shift_end(session.clock_in.timestamp, shift) + timedelta(minutes=day.tolerance.exit_minutes)
        return max(midnight, end)

    def _interrupt(self, session: TimeClockSession, boundary: datetime) -> TimeClockSession:
        end = max(boundary, session.clock_in.timestamp)
        day = self._resolver.resolve(session.employee_id, session.work_date)
        interrupted = self._finalize(session, end=end, status=SessionStatus.INTERRUPTED, day=day)
        self._sessions.save(interrupted)
        logger.warning(
            "session %s of employee %s interrupted at %s without clock-out",
            session.session_id, session.employee_id, end.isoformat(),
        )
        return interrupted

    # -------- Justification & corrections --------
    def submit_justification(self, employee_id: int, work_date: date, text: str) -> TimeClockSession:
        text = require_non_empty(text, "Justification")
        with self._locks.hold(employee_id):
            session = self._sessions.get(employee_id, work_date)
            if session is None:
                raise NotFoundError(f"No session for employee {employee_id} on {work_date.isoformat()}")
            flags = tuple(f for f in session.flags if f != ComplianceFlag.JUSTIFICATION_REQUIRED)
            updated = replace(session, justification=text, flags=flags, updated_at=self._clock())
            self._sessions.save(updated)
            return updated

    def preview_correction(
        self,
        employee_id: int,
        work_date: date,
        *,
        clock_in: Optional[datetime] = None,
        clock_out: Optional[datetime] = None,
        breaks: Optional[Sequence[BreakRecord]] = None,
        justification: Optional[str] = None,
        corrected_by: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> TimeClockSession:
        """Return the session as it would look after a correction, without saving it."""
        existing = self._sessions.get(employee_id, work_date)
        day = self._resolver.resolve(employee_id, work_date)

        if existing is None:
            if clock_in is None or clock_out is None:
                raise ValidationError("A new session needs both clock-in and clock-out")
            existing = TimeClockSession(
                session_id=0,
                employee_id=int(employee_id),
                work_date=work_date,
                clock_in=ClockRecord(timestamp=clock_in, record_type=ClockRecordType.CLOCK_IN),
                status=SessionStatus.ACTIVE,
                expected_minutes=day.expected_minutes,
                schedule_id=day.schedule_id,
                created_at=self._clock(),
            )

        provenance = {"is_manual": True, "manual_reason": reason, "registered_by": corrected_by}
        session = existing
        if clock_in is not None:
            session = replace(session, clock_in=replace(session.clock_in, timestamp=clock_in, **provenance))
        if clock_out is not None:
            base = session.clock_out or ClockRecord(timestamp=clock_out, record_type=ClockRecordType.CLOCK_OUT)
            session = replace(session, clock_out=replace(base, timestamp=clock_out, **provenance))
        if breaks is not None:
            session = replace(session, breaks=tuple(self._classify_break(b, day) for b in breaks))
        if justification is not None:
            session = replace(session, justification=justification)

        self._check_interval(session)
        session = self._evaluate_arrival(session, day)

        if session.clock_out is not None:
            return self._finalize(session, end=session.clock_out.timestamp, status=SessionStatus.COMPLETED, day=day)

        flags = [f for f in session.flags if f != ComplianceFlag.JUSTIFICATION_REQUIRED]
        if session.is_late and not session.justification:
            flags.append(ComplianceFlag.JUSTIFICATION_REQUIRED)
        return replace(session, flags=tuple(dict.fromkeys(flags)), updated_at=self._clock())

    def apply_correction(self, employee_id: int, work_date: date, **changes) -> TimeClockSession:
        """Overwrite the disputed fields of a session. Used when an edit request is approved."""
        with self._locks.hold(employee_id):
            corrected = self.preview_correction(employee_id, work_date, **changes)
            if corrected.session_id:
                self._sessions.save(corrected)
                return corrected
            session_id = self._sessions.add(corrected)
            return replace(corrected, session_id=session_id)

    # -------- Reads --------
    def today(self) -> date:
        return self._clock().date()

    def get_session(self, employee_id: int, work_date: date) -> Optional[TimeClockSession]:
        return self._sessions.get(employee_id, work_date)

    def list_sessions(self, employee_id: int, *, start: date, end: date) -> Sequence[TimeClockSession]:
        return self._sessions.list_for_employee(employee_id, start=start, end=end)

    def current_state(self, employee_id: int, *, today: Optional[date] = None) -> ClockState:
        session = self._sessions.get(employee_id, today or self._clock().date())
        return session.state if session else ClockState.NOT_STARTED

    def today_stats(self, employee_id: int, *, now: Optional[datetime] = None) -> TodayStats:
        now = now or self._clock()
        session = self._sessions.get(employee_id, now.date())
        if session is None:
            return TodayStats(state=ClockState.NOT_STARTED)

        if session.is_open:
            worked = self._calculator.worked_minutes(session, now)
        else:
            worked = session.total_worked_minutes
        return TodayStats(
            state=session.state,
            worked_minutes=worked,
            expected_minutes=session.expected_minutes,
            break_minutes=session.break_minutes,
            remaining_minutes=max(session.expected_minutes - worked, 0),
            overtime_minutes=max(worked - session.expected_minutes, 0),
        )

    # -------- Internals --------
    def _transaction(self) -> ContextManager[None]:
        return self._transactions.transaction() if self._transactions else nullcontext()

    def _open_session(self, employee_id: int, now: datetime) -> TimeClockSession:
        # An overnight session is still attached to the day it started.
        for work_date in (now.date(), now.date() - timedelta(days=1)):
            session = self._sessions.get(employee_id, work_date)
            if session and session.is_open:
                return session
        raise NoActiveSession("No active session")

    @staticmethod
    def _clock_record(
        now: datetime,
        record_type: ClockRecordType,
        *,
        location: Optional[GeoLocation],
        ip_address: Optional[str],
        is_manual: bool,
        manual_reason: Optional[str],
        registered_by: Optional[int],
    ) -> ClockRecord:
        if is_manual:
            manual_reason = require_non_empty(manual_reason or "", "Manual reason")
            if registered_by is None:
                raise ValidationError("Manual entries must name who registered them")
        return ClockRecord(
            timestamp=now,
            record_type=record_type,
            location=location,
            ip_address=ip_address,
            is_manual=is_manual,
            manual_reason=manual_reason if is_manual else None,
            registered_by=registered_by if is_manual else None,
        )

    @staticmethod
    def _match_break_config(
        day: ResolvedDay,
        now: datetime,
        break_type: BreakType,
        break_config_id: Optional[int],
    ) -> Optional[BreakConfig]:
        if break_config_id is not None:
            for config in day.breaks:
                if config.break_id == int(break_config_id):
                    return config
            raise ValidationError(f"Unknown break configuration #{break_config_id}")

        grace = timedelta(minutes=day.tolerance.lunch_minutes if break_type == BreakType.LUNCH else 0)
        for config in day.breaks:
            window_start = datetime.combine(now.date(), config.start_time) - grace
            window_end = datetime.combine(now.date(), config.end_time) + grace
            if window_start <= now <= window_end:
                return config
        return None

    def _classify_break(self, record: BreakRecord, day: ResolvedDay) -> BreakRecord:
        config = self._match_break_config(day, record.start_time, record.break_type, record.break_config_id)
        classified = replace(
            record,
            is_paid=config.is_paid if config else False,
            break_config_id=config.break_id if config else None,
            flags=(),
        )
        if classified.end_time is not None:
            return self._close_break(classified, classified.end_time, day)
        return classified

    @staticmethod
    def _close_break(record: BreakRecord, end: datetime, day: ResolvedDay) -> BreakRecord:
        closed = replace(record, end_time=max(end, record.start_time))
        config = next((c for c in day.breaks if c.break_id == record.break_config_id), None)
        if config is None:
            return closed

        flags: list[ComplianceFlag] = []
        duration = closed.duration_minutes or 0
        if config.minimum_duration and duration < config.minimum_duration:
            flags.append(ComplianceFlag.BREAK_TOO_SHORT)
        if config.maximum_duration and duration > config.maximum_duration:
            flags.append(ComplianceFlag.BREAK_TOO_LONG)
        return replace(closed, flags=tuple(flags))

    @staticmethod
    def _check_interval(session: TimeClockSession) -> None:
        start = session.clock_in.timestamp
        end = session.clock_out.timestamp if session.clock_out else None
        if end is not None and end <= start:
            raise TimestampBeforeClockIn("Clock-out must be after clock-in")

        previous_end: Optional[datetime] = None
        for record in sorted(session.breaks, key=lambda b: b.start_time):
            if record.start_time < start:
                raise TimestampBeforeClockIn("Break cannot start before clock-in")
            if record.end_time is not None and record.end_time < record.start_time:
                raise ValidationError("Break cannot end before it starts")
            if end is not None and (record.end_time is None or record.end_time > end):
                raise ValidationError("Breaks must lie inside the session")
            if previous_end is not None and record.start_time < previous_end:
                raise ValidationError("Breaks cannot overlap")
            previous_end = record.end_time

    def _evaluate_arrival(self, session: TimeClockSession, day: ResolvedDay) -> TimeClockSession:
        now = session.clock_in.timestamp
        shift = nearest_shift(now, day.shifts)
        strategy = self._factory.for_clock_in(now=now, shift=shift, tolerance=day.tolerance)
        decision = strategy.decide_clock_in(now=now, shift=shift, tolerance=day.tolerance)
        return replace(session, is_late=decision.is_late, minutes_late=decision.minutes_late)

    def _finalize(self, session: TimeClockSession, *, end: datetime, status: SessionStatus, day: ResolvedDay) -> TimeClockSession:
        breaks = tuple(b if b.is_complete else self._close_break(b, end, day) for b in session.breaks)
        session = replace(session, breaks=breaks)

        worked = self._calculator.worked_minutes(session, end)
        overtime = max(worked - session.expected_minutes, 0)
        flags = self._compliance_flags(session, day, end=end, status=status, overtime=overtime)

        return replace(
            session,
            status=status,
            total_worked_minutes=worked,
            overtime_minutes=overtime,
            overtime_billable=day.allow_overtime or overtime == 0,
            flags=flags,
            updated_at=self._clock(),
        )

    def _compliance_flags(
        self,
        session: TimeClockSession,
        day: ResolvedDay,
        *,
        end: datetime,
        status: SessionStatus,
        overtime: int,
    ) -> tuple[ComplianceFlag, ...]:
        flags: list[ComplianceFlag] = []
        unjustified = not session.justification

        if session.is_late and unjustified:
            flags.append(ComplianceFlag.JUSTIFICATION_REQUIRED)

        if status == SessionStatus.COMPLETED:
            shift = nearest_shift(session.clock_in.timestamp, day.shifts)
            strategy = self._factory.for_clock_out(
                clock_in=session.clock_in.timestamp, now=end, shift=shift, tolerance=day.tolerance,
            )
            decision = strategy.decide_clock_out(now=end, shift=shift, tolerance=day.tolerance)
            flags.extend(decision.flags)
            if decision.flags and day.require_justification and unjustified:
                flags.append(ComplianceFlag.JUSTIFICATION_REQUIRED)
            if _missing_required_break(session.breaks, day.breaks):
                flags.append(ComplianceFlag.REQUIRED_BREAK_MISSING)
        else:
            flags.append(ComplianceFlag.CLOSED_WITHOUT_CLOCK_OUT)

        if overtime and not day.allow_overtime:
            flags.append(ComplianceFlag.OVERTIME_NOT_ALLOWED)

        # Keep first occurrence order, drop duplicates.
        return tuple(dict.fromkeys(flags))


def _missing_required_break(taken: Iterable[BreakRecord], configured: Iterable[BreakConfig]) -> bool:
    taken_ids = {b.break_config_id for b in taken if b.is_complete}
    return any(c.is_required and c.break_id not in taken_ids for c in configured)
