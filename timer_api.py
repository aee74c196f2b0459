"""
Task Timers API: local FastAPI server around the task timer engine

This server provides:
- Start / pause / stop / switch operations for the agent's task timers
- Read-only timer projections for the dashboard
- The watched task list (terminal statuses force-stop the running timer)
- Recent notices and logs, plus an events audit trail in SQLite
"""

import sys
import json
import asyncio
import logging
import traceback
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Deque, List, Optional

import aiosqlite
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from task_timer import Notice, StopReason, Task, TaskStatus, TaskTimerEngine, TimerAction
from timer_config import load_settings
from timer_db import init_database
from timer_store import SqliteTimerStore
from timer_ticker import TimerTicker

# Configure logging for buffer capture
logger = logging.getLogger("task_timers")
logger.setLevel(logging.INFO)

# ============ Server-side Log / Notice Buffers ============

# Circular buffers of recent entries (max 100 each)
log_buffer: Deque[dict] = deque(maxlen=100)
notice_buffer: Deque[dict] = deque(maxlen=100)

# Notices waiting to be written to the events table
_pending_events: List[Notice] = []


class LogBufferHandler(logging.Handler):
    """Custom logging handler that captures logs to circular buffer."""

    def emit(self, record: logging.LogRecord):
        """Capture log record to buffer with timestamp, level, and message."""
        try:
            log_buffer.append({
                "timestamp": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "level": record.levelname,
                "message": self.format(record),
            })
        except Exception:
            self.handleError(record)


buffer_handler = LogBufferHandler()
buffer_handler.setLevel(logging.DEBUG)
buffer_handler.setFormatter(logging.Formatter('%(message)s'))
logger.addHandler(buffer_handler)

# Also capture uvicorn logs
logging.getLogger("uvicorn").addHandler(buffer_handler)


# Configuration
settings = load_settings()
DB_PATH = settings.db_path
CRASH_LOG_PATH = settings.crash_log_path


# ============ Crash Logging ============

def log_crash(exc_type, exc_value, exc_tb, context: str = "unhandled"):
    """Write crash info to persistent file for post-mortem debugging."""
    try:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        tb_str = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))

        CRASH_LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        with open(CRASH_LOG_PATH, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"CRASH [{context}] at {timestamp}\n")
            f.write(f"{'='*60}\n")
            f.write(tb_str)
            f.write("\n")

        print(f"CRASH [{context}]: {exc_type.__name__}: {exc_value}", file=sys.stderr)
    except OSError as e:
        print(f"Failed to write crash log: {e}", file=sys.stderr)


def _global_exception_handler(exc_type, exc_value, exc_tb):
    """Global exception handler for uncaught sync exceptions."""
    log_crash(exc_type, exc_value, exc_tb, context="sync")
    sys.__excepthook__(exc_type, exc_value, exc_tb)


def _asyncio_exception_handler(loop, context):
    """Handler for uncaught exceptions in asyncio tasks."""
    exception = context.get("exception")
    if exception:
        log_crash(type(exception), exception, exception.__traceback__, context="asyncio")
    else:
        logger.error(f"ASYNCIO ERROR: {context.get('message')}")
    loop.default_exception_handler(context)


sys.excepthook = _global_exception_handler


# ============ Engine wiring ============

scheduler: Optional[AsyncIOScheduler] = None
engine: Optional[TaskTimerEngine] = None


def record_notice(notice: Notice):
    """Engine notice callback: buffer for the dashboard, queue for the audit trail."""
    notice_buffer.append({
        "timestamp": datetime.now().strftime("%H:%M:%S"),
        "level": notice.level.value,
        "message": notice.message,
        "task_id": notice.task_id,
    })
    _pending_events.append(notice)


async def log_event(event_type: str, task_id: str = None, details: dict = None):
    """Log an event to the events table."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            "INSERT INTO events (event_type, task_id, details) VALUES (?, ?, ?)",
            (event_type, task_id, json.dumps(details) if details else None)
        )
        await db.commit()


async def flush_events():
    """Write queued notices to the events table."""
    while _pending_events:
        notice = _pending_events.pop(0)
        try:
            await log_event(
                f"timer_{notice.level.value}",
                task_id=notice.task_id,
                details={"message": notice.message},
            )
        except Exception as e:
            logger.error(f"Failed to log timer event: {e}")


def get_engine() -> TaskTimerEngine:
    if engine is None:
        raise HTTPException(status_code=503, detail="Timer engine not initialized")
    return engine


# Lifespan context manager
@asynccontextmanager
async def lifespan(app: FastAPI):
    global scheduler, engine

    loop = asyncio.get_running_loop()
    loop.set_exception_handler(_asyncio_exception_handler)

    # Startup
    init_database(DB_PATH)
    scheduler = AsyncIOScheduler()
    ticker = TimerTicker(scheduler, interval_seconds=settings.tick_seconds, after_tick=flush_events)
    engine = TaskTimerEngine(
        store=SqliteTimerStore(DB_PATH),
        self_agent_id=settings.agent_id,
        on_notice=record_notice,
        ticker=ticker,
        max_age_ms=settings.max_age_ms,
    )
    scheduler.start()
    logger.info(f"Task timers started for agent {settings.agent_id}")
    await flush_events()
    yield

    # Shutdown
    await flush_events()
    scheduler.shutdown(wait=False)
    engine = None
    logger.info("Task timers stopped")


# FastAPI App
app = FastAPI(
    title="Task Timers",
    description="Local FastAPI server for agent task timers",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Pydantic Models
class TaskModel(BaseModel):
    id: str
    name: str
    allotted_duration_minutes: Optional[int] = None
    status: TaskStatus = TaskStatus.PENDING


class TasksUpdateRequest(BaseModel):
    tasks: List[TaskModel]
    lock_agent_id: Optional[str] = None


class StopRequest(BaseModel):
    task_id: Optional[str] = None
    reason: StopReason = StopReason.MANUAL


class ActionResponse(BaseModel):
    action: TimerAction
    timer: dict


class LogEntry(BaseModel):
    """Single log entry."""
    timestamp: str
    level: str
    message: str


class LogsResponse(BaseModel):
    """Response for recent logs."""
    logs: List[LogEntry]
    count: int


class NoticeEntry(BaseModel):
    timestamp: str
    level: str
    message: str
    task_id: Optional[str] = None


class NoticesResponse(BaseModel):
    notices: List[NoticeEntry]
    count: int


def timer_payload(eng: TaskTimerEngine) -> dict:
    """All read-only projections in one dict."""
    state = eng.timer_state
    prompt = eng.switch_prompt
    lock = eng.global_lock
    return {
        "timer_state": asdict(state) if state else None,
        "paused_remaining_by_task": eng.paused_remaining_by_task,
        "overdue_by_task": eng.overdue_by_task,
        "global_lock": lock.to_dict() if lock else None,
        "switch_prompt": asdict(prompt) if prompt else None,
    }


async def respond(eng: TaskTimerEngine, action: TimerAction) -> dict:
    await flush_events()
    return {"action": action, "timer": timer_payload(eng)}


# ============ Timer Endpoints ============

@app.get("/api/timer")
async def get_timer():
    """Current timer projections."""
    return timer_payload(get_engine())


@app.put("/api/tasks")
async def update_tasks(request: TasksUpdateRequest):
    """Replace the watched task list. A terminal status on the running task stops its timer."""
    eng = get_engine()
    if request.lock_agent_id is not None:
        eng.lock_agent_id = request.lock_agent_id
    eng.tasks = [
        Task(id=t.id, name=t.name, allotted_duration_minutes=t.allotted_duration_minutes, status=t.status)
        for t in request.tasks
    ]
    await flush_events()
    return {"count": len(request.tasks), "timer": timer_payload(eng)}


@app.post("/api/timer/switch/confirm", response_model=ActionResponse)
async def confirm_switch():
    """Pause the running timer and start the pending task."""
    eng = get_engine()
    return await respond(eng, eng.confirm_switch())


@app.post("/api/timer/switch/cancel", response_model=ActionResponse)
async def cancel_switch():
    """Dismiss a pending switch; the running timer is untouched."""
    eng = get_engine()
    return await respond(eng, eng.cancel_switch())


@app.post("/api/timer/stop", response_model=ActionResponse)
async def stop_timer(request: StopRequest):
    """Stop the active timer (completed ends the session, manual keeps saved entries)."""
    eng = get_engine()
    return await respond(eng, eng.stop_for_task(request.task_id, request.reason))


@app.post("/api/timer/{task_id}/start", response_model=ActionResponse)
async def start_timer(task_id: str):
    """Start or resume a task's timer; asks for confirmation if another task is running."""
    eng = get_engine()
    return await respond(eng, eng.start(task_id))


@app.post("/api/timer/{task_id}/pause", response_model=ActionResponse)
async def pause_timer(task_id: str):
    """Pause the running timer."""
    eng = get_engine()
    return await respond(eng, eng.pause(task_id))


# ============ Notices / Logs ============

@app.get("/api/notices/recent", response_model=NoticesResponse)
async def get_recent_notices(limit: int = 50):
    """Most recent timer notices (max 100)."""
    limit = min(limit, 100)
    recent = list(notice_buffer)[-limit:]
    return {"notices": recent, "count": len(recent)}


@app.get("/api/logs/recent", response_model=LogsResponse)
async def get_recent_logs(limit: int = 50):
    """
    Get recent server logs from circular buffer.

    Args:
        limit: Maximum number of logs to return (default 50, max 100)
    """
    limit = min(limit, 100)
    recent_logs = list(log_buffer)[-limit:]
    return {"logs": recent_logs, "count": len(recent_logs)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=settings.port)
