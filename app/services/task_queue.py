# app/services/task_queue.py
"""
Durable scheduled-task queue backed by the `scheduled_tasks` table.

Scheduling is an insert in the caller's transaction, so tasks armed during a
request commit (or roll back) together with the rest of the request. The
dispatcher, driven by the APScheduler interval job in app.scheduler, runs
each due task in its own transaction: the row is locked, marked executed and
the handler applied in a single commit, so a task runs at most once and only
at or after its run time.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from app import crud
from app.constants.tasks import TaskState
from app.core.config import settings
from app.models.scheduled_task import ScheduledTask
from app.utils.dates import ensure_utc

logger = logging.getLogger(__name__)

TaskHandler = Callable[..., Any]

# Task name -> handler(db, **payload)
_handlers: Dict[str, TaskHandler] = {}


def task_handler(name: str) -> Callable[[TaskHandler], TaskHandler]:
    """Register `func` as the handler invoked for tasks called `name`."""

    def decorator(func: TaskHandler) -> TaskHandler:
        _handlers[name] = func
        return func

    return decorator


def get_handler(name: str) -> Optional[TaskHandler]:
    return _handlers.get(name)


def schedule_at(
    db: Session, run_at: datetime, name: str, payload: Dict[str, Any]
) -> ScheduledTask:
    """Arm `name(**payload)` to run at `run_at`. Returns the task handle row."""
    task = crud.scheduled_task.create_task(db, name=name, payload=payload, run_at=run_at)
    logger.info(f"Scheduled task {task.id} ({name}) at {task.run_at.isoformat()}")
    return task


def cancel(db: Session, task_id: Optional[str]) -> bool:
    """
    Cancel a pending task. Returns True if it was pending; tasks that already
    ran, failed or were canceled are left as they are.
    """
    if not task_id:
        return False
    task = crud.scheduled_task.get(db, task_id)
    if task is None or task.state != TaskState.PENDING:
        return False
    crud.scheduled_task.mark(
        db,
        db_obj=task,
        state=TaskState.CANCELED,
        completed_at=datetime.now(timezone.utc),
    )
    logger.info(f"Canceled task {task_id} ({task.name})")
    return True


def get_state(db: Session, task_id: Optional[str]) -> Optional[str]:
    """pending | executed | canceled | failed, or None for an unknown handle."""
    return crud.scheduled_task.get_state(db, task_id=task_id)


def _default_session_factory() -> Session:
    from app.db.session import SessionLocal

    return SessionLocal()


def _mark_failed(session_factory, task_id: str, error: str, now: datetime) -> None:
    db = session_factory()
    try:
        task = crud.scheduled_task.get(db, task_id)
        if task is not None:
            crud.scheduled_task.mark(
                db, db_obj=task, state=TaskState.FAILED, completed_at=now, error=error[:2000]
            )
            db.commit()
    finally:
        db.close()


def run_task(
    task_id: str,
    now: Optional[datetime] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> bool:
    """
    Execute one pending task in its own transaction.

    Returns True when the handler ran and committed. A handler exception rolls
    the transaction back and leaves the task `failed` with the error text.
    """
    now = ensure_utc(now or datetime.now(timezone.utc))
    session_factory = session_factory or _default_session_factory

    db = session_factory()
    try:
        task = crud.scheduled_task.lock_pending(db, task_id=task_id)
        if task is None:
            # Canceled, already run, or taken by another worker
            db.rollback()
            return False

        name = task.name
        payload = dict(task.payload or {})
        handler = get_handler(name)
        if handler is None:
            raise LookupError(f"No handler registered for task '{name}'")

        crud.scheduled_task.mark(db, db_obj=task, state=TaskState.EXECUTED, completed_at=now)
        handler(db, **payload)
        db.commit()
        logger.info(f"Executed task {task_id} ({name})")
        return True
    except Exception as e:
        db.rollback()
        logger.error(f"Task {task_id} failed: {e}", exc_info=True)
        _mark_failed(session_factory, task_id, str(e) or type(e).__name__, now)
        return False
    finally:
        db.close()


def dispatch_due_tasks(
    now: Optional[datetime] = None,
    session_factory: Optional[Callable[[], Session]] = None,
    limit: Optional[int] = None,
) -> int:
    """
    Run every pending task whose run time has passed.

    Returns the number of tasks that executed successfully.
    """
    now = ensure_utc(now or datetime.now(timezone.utc))
    session_factory = session_factory or _default_session_factory
    limit = limit or settings.TASK_DISPATCH_BATCH_SIZE

    db = session_factory()
    try:
        due_ids = crud.scheduled_task.get_due_ids(db, now=now, limit=limit)
    finally:
        db.close()

    if not due_ids:
        return 0

    logger.info(f"Dispatching {len(due_ids)} due task(s)")
    executed = 0
    for task_id in due_ids:
        if run_task(task_id, now=now, session_factory=session_factory):
            executed += 1
    return executed
