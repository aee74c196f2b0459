"""Task timer engine: per-task countdown timers that turn into overdue count-up.

Pure state transitions plus a small stateful engine around them. All
timestamps are integer wall-clock milliseconds; all counters are integer
seconds. Time source, persistence and the tick driver are injected so every
transition is deterministically testable.

Counters are never decremented per tick. Every recomputation derives the
current value from the baseline captured at the last start/resume
(``remaining_at_start`` / ``overdue_at_start``) and the wall-clock time
elapsed since ``started_at``, so suspended processes and late ticks cannot
accumulate drift.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol, Union

logger = logging.getLogger("task_timers")


SNAPSHOT_KEY = "task_timer_state"
LOCK_KEY = "global_timer_lock"
MAX_SNAPSHOT_AGE_MS = 24 * 60 * 60 * 1000  # 24 hours
UNKNOWN_TASK_NAME = "Unknown Task"


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def format_timer_display(seconds: int) -> str:
    """Format seconds as 'M:SS', or 'H:MM:SS' from one hour up."""
    s = max(0, seconds)
    hours = s // 3600
    minutes = (s % 3600) // 60
    secs = s % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


# ---- Tasks ----

class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REASSIGNED = "reassigned"
    QC_APPROVED = "qc_approved"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.QC_APPROVED, TaskStatus.CANCELLED})


@dataclass(frozen=True)
class Task:
    id: str
    name: str
    allotted_duration_minutes: Optional[int] = None
    status: TaskStatus = TaskStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def has_budget(self) -> bool:
        return self.allotted_duration_minutes is not None and self.allotted_duration_minutes > 0


# ---- Timer entries ----

@dataclass(frozen=True)
class Running:
    """Actively counting. Current values are derived from the at-start baselines."""
    started_at: int
    remaining_at_start: int
    overdue_at_start: int = 0
    is_overdue: bool = False
    remaining_seconds: int = 0
    overdue_seconds: int = 0


@dataclass(frozen=True)
class Paused:
    """Frozen. Paused time never advances a counter."""
    paused_at: int
    remaining_seconds: int
    overdue_seconds: int = 0
    is_overdue: bool = False


Phase = Union[Running, Paused]


@dataclass(frozen=True)
class TimerEntry:
    """Per-task timer snapshot. An absent entry means the task was never started."""
    task_id: str
    total_seconds: int
    phase: Phase

    @property
    def is_running(self) -> bool:
        return isinstance(self.phase, Running)

    @property
    def is_overdue(self) -> bool:
        return self.phase.is_overdue

    @property
    def remaining_seconds(self) -> int:
        return self.phase.remaining_seconds

    @property
    def overdue_seconds(self) -> int:
        return self.phase.overdue_seconds

    @property
    def remaining_at_start(self) -> int:
        if isinstance(self.phase, Running):
            return self.phase.remaining_at_start
        return self.phase.remaining_seconds

    @property
    def overdue_at_start(self) -> int:
        if isinstance(self.phase, Running):
            return self.phase.overdue_at_start
        return self.phase.overdue_seconds

    @property
    def started_at(self) -> Optional[int]:
        return self.phase.started_at if isinstance(self.phase, Running) else None

    @property
    def paused_at(self) -> Optional[int]:
        return self.phase.paused_at if isinstance(self.phase, Paused) else None

    def to_dict(self) -> dict:
        """Flat snake_case dict for persistence."""
        return {
            "task_id": self.task_id,
            "total_seconds": self.total_seconds,
            "remaining_seconds": self.remaining_seconds,
            "remaining_at_start": self.remaining_at_start,
            "is_running": self.is_running,
            "is_overdue": self.is_overdue,
            "overdue_seconds": self.overdue_seconds,
            "overdue_at_start": self.overdue_at_start,
            "started_at": self.started_at,
            "paused_at": self.paused_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimerEntry":
        """Rebuild an entry. Raises KeyError/TypeError/ValueError on malformed data."""
        remaining = int(data["remaining_seconds"])
        overdue = int(data.get("overdue_seconds") or 0)
        is_overdue = bool(data.get("is_overdue", False))
        started_at = data.get("started_at")

        if data.get("is_running") and started_at is not None:
            remaining_at_start = data.get("remaining_at_start")
            overdue_at_start = data.get("overdue_at_start")
            phase: Phase = Running(
                started_at=int(started_at),
                remaining_at_start=remaining if remaining_at_start is None else int(remaining_at_start),
                overdue_at_start=overdue if overdue_at_start is None else int(overdue_at_start),
                is_overdue=is_overdue,
                remaining_seconds=remaining,
                overdue_seconds=overdue,
            )
        else:
            # Running without a start time is treated as paused
            phase = Paused(
                paused_at=int(data.get("paused_at") or 0),
                remaining_seconds=remaining,
                overdue_seconds=overdue,
                is_overdue=is_overdue,
            )
        return cls(task_id=str(data["task_id"]), total_seconds=int(data["total_seconds"]), phase=phase)


@dataclass(frozen=True)
class TimerSnapshot:
    """Whole-engine state as written to the store."""
    active: Optional[TimerEntry]
    timers_by_task: dict[str, TimerEntry]
    timestamp: int

    def is_stale(self, now_ms: int, max_age_ms: int = MAX_SNAPSHOT_AGE_MS) -> bool:
        return now_ms - self.timestamp > max_age_ms

    def to_dict(self) -> dict:
        return {
            "active": self.active.to_dict() if self.active is not None else None,
            "timers_by_task": {tid: e.to_dict() for tid, e in self.timers_by_task.items()},
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimerSnapshot":
        active = data.get("active")
        return cls(
            active=TimerEntry.from_dict(active) if active is not None else None,
            timers_by_task={
                str(tid): TimerEntry.from_dict(e) for tid, e in (data.get("timers_by_task") or {}).items()
            },
            timestamp=int(data["timestamp"]),
        )


@dataclass(frozen=True)
class GlobalLock:
    """Advisory, session-local "a timer is running" marker. Not a mutex."""
    is_locked: bool
    task_id: str
    agent_id: str
    task_name: str

    def to_dict(self) -> dict:
        return {
            "is_locked": self.is_locked,
            "task_id": self.task_id,
            "agent_id": self.agent_id,
            "task_name": self.task_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GlobalLock":
        return cls(
            is_locked=bool(data["is_locked"]),
            task_id=str(data["task_id"]),
            agent_id=str(data["agent_id"]),
            task_name=str(data.get("task_name") or UNKNOWN_TASK_NAME),
        )


# ---- Pure transitions ----

def elapsed_seconds(started_at: int, now_ms: int) -> int:
    """Whole seconds since started_at. A clock stepping backwards counts as zero."""
    return max(0, (now_ms - started_at) // 1000)


def start_entry(task_id: str, total_seconds: int, existing: Optional[TimerEntry], now_ms: int) -> TimerEntry:
    """Start or resume a task's timer.

    An overdue entry resumes counting up from its overdue total. Otherwise
    the countdown resumes from the saved remaining time, or starts fresh
    from total_seconds when nothing positive was saved.
    """
    if existing is not None and existing.is_overdue:
        overdue = existing.overdue_seconds
        return TimerEntry(task_id, total_seconds, Running(
            started_at=now_ms,
            remaining_at_start=0,
            overdue_at_start=overdue,
            is_overdue=True,
            remaining_seconds=0,
            overdue_seconds=overdue,
        ))

    if existing is not None and existing.remaining_seconds > 0:
        remaining = existing.remaining_seconds
    else:
        remaining = total_seconds
    return TimerEntry(task_id, total_seconds, Running(
        started_at=now_ms,
        remaining_at_start=remaining,
        remaining_seconds=remaining,
    ))


def advance_entry(entry: TimerEntry, now_ms: int) -> tuple[TimerEntry, bool]:
    """Recompute a running entry from its baseline.

    Returns (entry, crossed_into_overdue). Paused entries come back unchanged.
    Crossing into overdue rebases started_at to now_ms, so the next
    recomputation counts up from the overdue amount reached here.
    """
    phase = entry.phase
    if not isinstance(phase, Running):
        return entry, False

    elapsed = elapsed_seconds(phase.started_at, now_ms)

    if phase.is_overdue:
        return replace(entry, phase=replace(phase, overdue_seconds=phase.overdue_at_start + elapsed)), False

    remaining = phase.remaining_at_start - elapsed
    if remaining <= 0:
        overdue = abs(remaining)
        return replace(entry, phase=Running(
            started_at=now_ms,
            remaining_at_start=0,
            overdue_at_start=overdue,
            is_overdue=True,
            remaining_seconds=0,
            overdue_seconds=overdue,
        )), True

    return replace(entry, phase=replace(phase, remaining_seconds=remaining)), False


def pause_entry(entry: TimerEntry, now_ms: int) -> TimerEntry:
    """Freeze a running entry at its current remaining/overdue values."""
    if not isinstance(entry.phase, Running):
        return entry
    advanced, _ = advance_entry(entry, now_ms)
    phase = advanced.phase
    return replace(entry, phase=Paused(
        paused_at=now_ms,
        remaining_seconds=phase.remaining_seconds,
        overdue_seconds=phase.overdue_seconds,
        is_overdue=phase.is_overdue,
    ))


class Recovery(Enum):
    RESUMED = "resumed"
    RESUMED_OVERDUE = "resumed_overdue"
    NOW_OVERDUE = "now_overdue"
    RESTORED_PAUSED = "restored_paused"
    RESTORED_OVERDUE = "restored_overdue"


def recover_entry(entry: TimerEntry, now_ms: int) -> tuple[TimerEntry, Recovery]:
    """Reconcile a restored active entry with the time that passed while unloaded.

    Running entries are recomputed and rebased to now_ms; paused entries are
    returned exactly as persisted.
    """
    if not isinstance(entry.phase, Running):
        return entry, Recovery.RESTORED_OVERDUE if entry.is_overdue else Recovery.RESTORED_PAUSED

    was_overdue = entry.is_overdue
    advanced, crossed = advance_entry(entry, now_ms)
    phase = advanced.phase
    rebased = replace(advanced, phase=Running(
        started_at=now_ms,
        remaining_at_start=phase.remaining_seconds,
        overdue_at_start=phase.overdue_seconds,
        is_overdue=phase.is_overdue,
        remaining_seconds=phase.remaining_seconds,
        overdue_seconds=phase.overdue_seconds,
    ))
    if crossed:
        return rebased, Recovery.NOW_OVERDUE
    return rebased, Recovery.RESUMED_OVERDUE if was_overdue else Recovery.RESUMED


# ---- Switch gate ----

@dataclass(frozen=True)
class GateIdle:
    pass


@dataclass(frozen=True)
class AwaitingConfirmation:
    pending_task_id: str


SwitchGate = Union[GateIdle, AwaitingConfirmation]


# ---- Notices and projections ----

class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    NoticeLevel.INFO: logging.INFO,
    NoticeLevel.SUCCESS: logging.INFO,
    NoticeLevel.WARNING: logging.WARNING,
    NoticeLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    task_id: Optional[str] = None


class TimerAction(str, Enum):
    """What an operation ended up doing."""
    STARTED = "started"
    RESUMED = "resumed"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    PAUSED = "paused"
    STOPPED = "stopped"
    SWITCHED = "switched"
    CANCELLED = "cancelled"
    IGNORED = "ignored"


class StopReason(str, Enum):
    COMPLETED = "completed"
    MANUAL = "manual"


@dataclass(frozen=True)
class TimerState:
    """Flattened view of the active timer for a "now playing" widget."""
    task_id: str
    remaining_seconds: int
    is_running: bool
    total_seconds: int
    is_overdue: bool
    overdue_seconds: int
    is_globally_locked: bool = False
    locked_by_agent: Optional[str] = None
    started_at: Optional[int] = None
    paused_at: Optional[int] = None


@dataclass(frozen=True)
class CurrentTaskView:
    id: str
    name: str
    remaining_time: str
    overdue_time: Optional[str] = None


@dataclass(frozen=True)
class NewTaskView:
    id: str
    name: str


@dataclass(frozen=True)
class SwitchPrompt:
    """Everything a confirmation dialog needs to describe a pending switch."""
    current_task: Optional[CurrentTaskView]
    new_task: NewTaskView
    self_agent_id: str
    lock_agent_id: Optional[str] = None


# ---- Ports ----

class TimerStore(Protocol):
    def load(self, key: str) -> Optional[dict]: ...

    def save(self, key: str, value: dict) -> None: ...

    def clear(self, key: str) -> None: ...


class Ticker(Protocol):
    def start(self, tick: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...


# ---- Engine ----

class TaskTimerEngine:
    """Owns all timer state for one agent session.

    Holds the active entry, the per-task saved entries and the switch gate.
    Every transition that changes timer state is mirrored to the store in the
    same call. Operations never raise; they report what happened as a
    TimerAction and surface user-facing messages through on_notice.
    """

    def __init__(
        self,
        store: TimerStore,
        tasks: Iterable[Task] = (),
        self_agent_id: str = "",
        lock_agent_id: Optional[str] = None,
        clock: Callable[[], int] = wall_clock_ms,
        on_notice: Optional[Callable[[Notice], None]] = None,
        ticker: Optional[Ticker] = None,
        max_age_ms: int = MAX_SNAPSHOT_AGE_MS,
    ):
        self.self_agent_id = self_agent_id
        self.lock_agent_id = lock_agent_id
        self._store = store
        self._clock = clock
        self._on_notice = on_notice
        self._ticker = ticker
        self._max_age_ms = max_age_ms
        self._tasks: dict[str, Task] = {t.id: t for t in tasks}
        self._active: Optional[TimerEntry] = None
        self._timers_by_task: dict[str, TimerEntry] = {}
        self._gate: SwitchGate = GateIdle()

        self._recover()
        self._check_terminal_status()
        self._sync_ticker()

    # ---- Read-only properties ----

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    @tasks.setter
    def tasks(self, tasks: Iterable[Task]) -> None:
        """Replace the watched task collection. A terminal active task force-stops its timer."""
        self._tasks = {t.id: t for t in tasks}
        self._check_terminal_status()

    @property
    def active(self) -> Optional[TimerEntry]:
        return self._active

    @property
    def timers_by_task(self) -> dict[str, TimerEntry]:
        return dict(self._timers_by_task)

    @property
    def gate(self) -> SwitchGate:
        return self._gate

    @property
    def timer_state(self) -> Optional[TimerState]:
        active = self._active
        if active is None:
            return None
        return TimerState(
            task_id=active.task_id,
            remaining_seconds=active.remaining_seconds,
            is_running=active.is_running,
            total_seconds=active.total_seconds,
            is_overdue=active.is_overdue,
            overdue_seconds=active.overdue_seconds,
            is_globally_locked=False,
            locked_by_agent=self.self_agent_id,
            started_at=active.started_at,
            paused_at=active.paused_at,
        )

    @property
    def paused_remaining_by_task(self) -> dict[str, int]:
        return {
            tid: max(0, e.remaining_seconds)
            for tid, e in self._timers_by_task.items()
            if not e.is_overdue
        }

    @property
    def overdue_by_task(self) -> dict[str, int]:
        return {tid: e.overdue_seconds for tid, e in self._timers_by_task.items() if e.is_overdue}

    @property
    def switch_prompt(self) -> Optional[SwitchPrompt]:
        gate = self._gate
        if not isinstance(gate, AwaitingConfirmation):
            return None

        current = None
        active = self._active
        if active is not None:
            task = self._tasks.get(active.task_id)
            current = CurrentTaskView(
                id=active.task_id,
                name=task.name if task else "Current Task",
                remaining_time=format_timer_display(active.remaining_seconds),
                overdue_time=format_timer_display(active.overdue_seconds) if active.is_overdue else None,
            )
        pending = self._tasks.get(gate.pending_task_id)
        return SwitchPrompt(
            current_task=current,
            new_task=NewTaskView(id=gate.pending_task_id, name=pending.name if pending else "New Task"),
            self_agent_id=self.self_agent_id,
            lock_agent_id=self.lock_agent_id,
        )

    @property
    def global_lock(self) -> Optional[GlobalLock]:
        try:
            data = self._store.load(LOCK_KEY)
            return GlobalLock.from_dict(data) if data is not None else None
        except Exception as e:
            logger.warning(f"Ignoring unreadable global timer lock: {e}")
            return None

    # ---- Operations ----

    def start(self, task_id: str) -> TimerAction:
        """Start or resume a task's timer, or open the switch gate if another task is running."""
        task = self._tasks.get(task_id)
        if task is None:
            self._notify(NoticeLevel.ERROR, "Task not found", task_id)
            return TimerAction.IGNORED
        if task.is_terminal:
            return TimerAction.IGNORED
        if not task.has_budget:
            self._notify(NoticeLevel.ERROR, "No ideal duration set for this task", task_id)
            return TimerAction.IGNORED

        active = self._active
        if active is not None and active.is_running:
            if active.task_id != task_id:
                self._gate = AwaitingConfirmation(task_id)
                logger.info(f"Timer: switch from {active.task_id} to {task_id} awaiting confirmation")
                return TimerAction.AWAITING_CONFIRMATION
            # Already running; nothing to resume
            return TimerAction.IGNORED

        return self._start_now(task)

    def pause(self, task_id: str) -> TimerAction:
        active = self._active
        if active is None or active.task_id != task_id or not active.is_running:
            return TimerAction.IGNORED
        self._freeze_active()
        self._sync_ticker()
        logger.info(f"Timer: paused {task_id} with {self._active.remaining_seconds}s remaining")
        return TimerAction.PAUSED

    def stop_for_task(self, task_id: Optional[str] = None, reason: StopReason = StopReason.MANUAL) -> TimerAction:
        """Stop the active timer.

        A completed stop ends the whole local timing session: every saved
        entry is discarded. A manual stop only clears the active pointer; the
        task's entry stays in the map, frozen as paused.
        """
        active = self._active
        if active is None:
            self._clear_lock()
            return TimerAction.IGNORED
        if task_id is not None and active.task_id != task_id:
            return TimerAction.IGNORED

        reason = StopReason(reason)
        logger.info(f"Timer: stopping {active.task_id}, reason: {reason.value}")
        self._active = None

        if reason == StopReason.COMPLETED:
            self._timers_by_task = {}
            self._clear_snapshot()
            self._notify(NoticeLevel.SUCCESS, "Timer stopped - task completed!", active.task_id)
        else:
            self._timers_by_task[active.task_id] = pause_entry(active, self._clock())
            self._persist()
            self._notify(NoticeLevel.INFO, "Timer stopped manually", active.task_id)

        self._clear_lock()
        self._sync_ticker()
        return TimerAction.STOPPED

    def confirm_switch(self) -> TimerAction:
        """Pause the running timer and start the pending task in one step."""
        gate = self._gate
        if not isinstance(gate, AwaitingConfirmation):
            return TimerAction.IGNORED
        self._gate = GateIdle()

        active = self._active
        if active is not None and active.is_running:
            self._freeze_active(persist=False)

        task = self._tasks.get(gate.pending_task_id)
        result = TimerAction.IGNORED
        if task is None:
            self._notify(NoticeLevel.ERROR, "Task not found", gate.pending_task_id)
        elif not task.is_terminal:
            result = self._start_now(task)

        if result == TimerAction.IGNORED:
            self._persist()
            self._sync_ticker()
            return result

        self._notify(NoticeLevel.INFO, f'Switched timer to "{task.name}"', task.id)
        return TimerAction.SWITCHED

    def cancel_switch(self) -> TimerAction:
        """Close the gate. The running timer is left exactly as it was."""
        if not isinstance(self._gate, AwaitingConfirmation):
            return TimerAction.IGNORED
        self._gate = GateIdle()
        return TimerAction.CANCELLED

    def tick(self) -> None:
        """Recompute the running timer from wall-clock time and persist it."""
        active = self._active
        if active is None or not active.is_running:
            return
        entry, crossed = advance_entry(active, self._clock())
        self._set_active(entry)
        if crossed:
            self._notify(NoticeLevel.WARNING, f'Timer went OVERDUE for "{self._task_name(entry.task_id)}"',
                         entry.task_id)

    # ---- Internal ----

    def _start_now(self, task: Task) -> TimerAction:
        """Start a task bypassing the "another task is running" check."""
        if not task.has_budget:
            self._notify(NoticeLevel.ERROR, "No ideal duration set for this task", task.id)
            return TimerAction.IGNORED

        existing = self._timers_by_task.get(task.id)
        total_seconds = existing.total_seconds if existing is not None else task.allotted_duration_minutes * 60
        entry = start_entry(task.id, total_seconds, existing, self._clock())
        self._set_active(entry)
        self._write_lock(GlobalLock(is_locked=True, task_id=task.id, agent_id=self.self_agent_id,
                                    task_name=task.name))
        self._sync_ticker()

        logger.info(f"Timer: {'resumed' if existing else 'started'} {task.id} "
                    f"({entry.remaining_seconds}s remaining, overdue={entry.is_overdue})")
        return TimerAction.RESUMED if existing is not None else TimerAction.STARTED

    def _freeze_active(self, persist: bool = True) -> None:
        active = self._active
        frozen = pause_entry(active, self._clock())
        self._active = frozen
        self._timers_by_task[frozen.task_id] = frozen
        if persist:
            self._persist()
        self._write_lock(GlobalLock(is_locked=False, task_id=frozen.task_id, agent_id=self.self_agent_id,
                                    task_name=self._task_name(frozen.task_id)))

    def _set_active(self, entry: TimerEntry) -> None:
        self._active = entry
        self._timers_by_task[entry.task_id] = entry
        self._persist()

    def _check_terminal_status(self) -> None:
        active = self._active
        if active is None:
            return
        task = self._tasks.get(active.task_id)
        if task is None or not task.is_terminal:
            return

        logger.info(f"Timer: stopping {active.task_id} - status changed to {task.status.value}")
        self._active = None
        self._timers_by_task = {}
        self._clear_lock()
        self._clear_snapshot()
        self._sync_ticker()
        self._notify(NoticeLevel.SUCCESS, f"Timer stopped - task {task.status.value}!", task.id)

    def _recover(self) -> None:
        now = self._clock()
        try:
            data = self._store.load(SNAPSHOT_KEY)
            snapshot = TimerSnapshot.from_dict(data) if data is not None else None
        except Exception as e:
            logger.warning(f"Discarding unreadable timer state: {e}")
            self._clear_snapshot()
            return

        if snapshot is None:
            return
        if snapshot.is_stale(now, self._max_age_ms):
            logger.info("Discarding timer state older than the maximum age")
            self._clear_snapshot()
            return

        self._timers_by_task = dict(snapshot.timers_by_task)
        if snapshot.active is None:
            return

        entry, outcome = recover_entry(snapshot.active, now)
        self._set_active(entry)

        name = self._task_name(entry.task_id)
        if outcome == Recovery.RESUMED:
            self._notify(NoticeLevel.SUCCESS, f'Resumed timer for "{name}"', entry.task_id)
        elif outcome == Recovery.RESUMED_OVERDUE:
            self._notify(NoticeLevel.SUCCESS, f'Resumed overdue timer for "{name}"', entry.task_id)
        elif outcome == Recovery.NOW_OVERDUE:
            self._notify(NoticeLevel.WARNING, f'Timer is now OVERDUE for "{name}"', entry.task_id)
        elif outcome == Recovery.RESTORED_OVERDUE:
            self._notify(NoticeLevel.SUCCESS, f'Restored overdue timer for "{name}"', entry.task_id)
        else:
            self._notify(NoticeLevel.SUCCESS, f'Restored paused timer for "{name}"', entry.task_id)

    def _sync_ticker(self) -> None:
        if self._ticker is None:
            return
        if self._active is not None and self._active.is_running:
            self._ticker.start(self.tick)
        else:
            self._ticker.stop()

    def _task_name(self, task_id: str) -> str:
        task = self._tasks.get(task_id)
        return task.name if task else UNKNOWN_TASK_NAME

    def _notify(self, level: NoticeLevel, message: str, task_id: Optional[str] = None) -> None:
        logger.log(_LOG_LEVELS[level], f"Notice [{level.value}]: {message}")
        if self._on_notice is not None:
            self._on_notice(Notice(level=level, message=message, task_id=task_id))

    # ---- Store access (failures are logged, never raised) ----

    def _persist(self) -> None:
        snapshot = TimerSnapshot(active=self._active, timers_by_task=dict(self._timers_by_task),
                                 timestamp=self._clock())
        try:
            self._store.save(SNAPSHOT_KEY, snapshot.to_dict())
        except Exception as e:
            logger.error(f"Failed to save timer state: {e}")

    def _clear_snapshot(self) -> None:
        try:
            self._store.clear(SNAPSHOT_KEY)
        except Exception as e:
            logger.error(f"Failed to clear timer state: {e}")

    def _write_lock(self, lock: GlobalLock) -> None:
        try:
            self._store.save(LOCK_KEY, lock.to_dict())
        except Exception as e:
            logger.error(f"Failed to update global timer lock: {e}")

    def _clear_lock(self) -> None:
        try:
            self._store.clear(LOCK_KEY)
        except Exception as e:
            logger.error(f"Failed to clear global timer lock: {e}")
