# app/crud/crud_scheduled_task.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.constants.tasks import TaskState
from app.crud.base import CRUDBase
from app.models.scheduled_task import ScheduledTask
from app.utils.dates import ensure_utc


class CRUDScheduledTask(CRUDBase[ScheduledTask, Any, Any]):

    def create_task(
        self, db: Session, *, name: str, payload: Dict[str, Any], run_at: datetime
    ) -> ScheduledTask:
        return self.create(
            db,
            obj_in={
                "name": name,
                "payload": payload,
                "run_at": ensure_utc(run_at),
                "state": TaskState.PENDING,
            },
        )

    def get_state(self, db: Session, *, task_id: Optional[str]) -> Optional[str]:
        if not task_id:
            return None
        task = self.get(db, task_id)
        return task.state if task else None

    def is_pending(self, db: Session, *, task_id: Optional[str]) -> bool:
        return self.get_state(db, task_id=task_id) == TaskState.PENDING

    def get_due_ids(self, db: Session, *, now: datetime, limit: int = 100) -> List[str]:
        """Ids of pending tasks whose run time has passed, oldest first."""
        rows = (
            db.query(self.model.id)
            .filter(
                self.model.state == TaskState.PENDING,
                self.model.run_at <= ensure_utc(now),
            )
            .order_by(self.model.run_at.asc(), self.model.created_at.asc())
            .limit(limit)
            .all()
        )
        return [row.id for row in rows]

    def lock_pending(self, db: Session, *, task_id: str) -> Optional[ScheduledTask]:
        """
        Lock a pending task row for execution.

        Returns None when another worker holds the lock or the task is no
        longer pending. SKIP LOCKED is ignored by backends without row locks.
        """
        return (
            db.query(self.model)
            .filter(self.model.id == task_id, self.model.state == TaskState.PENDING)
            .with_for_update(skip_locked=True)
            .first()
        )

    def mark(
        self,
        db: Session,
        *,
        db_obj: ScheduledTask,
        state: str,
        completed_at: Optional[datetime] = None,
        error: Optional[str] = None,
    ) -> ScheduledTask:
        return self.update(
            db,
            db_obj=db_obj,
            obj_in={"state": state, "completed_at": completed_at, "error": error},
        )


scheduled_task = CRUDScheduledTask(ScheduledTask)
