"""Daily mission task persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod

from sqlalchemy import case
from sqlalchemy.orm import Session, sessionmaker

from leadboard.core.config import get_config
from leadboard.core.enums import PRIORITY_RANK, TaskStatus, TaskType
from leadboard.core.exceptions import NotFoundError
from leadboard.models import Lead, Task
from leadboard.models.base import utcnow
from leadboard.schemas import TaskDraft, TaskRecord
from leadboard.services.base_service import BaseService
from leadboard.utils.validators import sanitize_text


class TaskStore(ABC):
    @abstractmethod
    async def list_pending_tasks(self, user_id: str) -> list[TaskRecord]:
        """Pending tasks, highest priority first, then earliest due date."""

    @abstractmethod
    async def list_completed_tasks(self, user_id: str, limit: int | None = None) -> list[TaskRecord]:
        """Most recently completed tasks first."""

    @abstractmethod
    async def create_manual_task(self, user_id: str, draft: TaskDraft) -> TaskRecord:
        ...

    @abstractmethod
    async def update_task_status(self, task_id: str, user_id: str, status: TaskStatus) -> TaskRecord:
        ...


class SqlTaskStore(BaseService, TaskStore):
    def __init__(self, session_factory: sessionmaker | None = None, completed_limit: int | None = None) -> None:
        super().__init__(session_factory)
        self.completed_limit = completed_limit or get_config().COMPLETED_TASKS_LIMIT

    async def list_pending_tasks(self, user_id: str) -> list[TaskRecord]:
        rank = case(
            {priority.value: value for priority, value in PRIORITY_RANK.items()},
            value=Task.priority,
            else_=len(PRIORITY_RANK),
        )

        def work(session: Session) -> list[TaskRecord]:
            rows = (
                session.query(Task)
                .filter(Task.user_id == user_id, Task.status == TaskStatus.PENDING.value)
                .order_by(rank.asc(), Task.due_date.asc())
                .all()
            )
            return [TaskRecord.model_validate(row) for row in rows]

        return await self.run("list_pending_tasks", work, user_id=user_id)

    async def list_completed_tasks(self, user_id: str, limit: int | None = None) -> list[TaskRecord]:
        def work(session: Session) -> list[TaskRecord]:
            rows = (
                session.query(Task)
                .filter(Task.user_id == user_id, Task.status == TaskStatus.DONE.value)
                .order_by(Task.completed_at.desc())
                .limit(limit or self.completed_limit)
                .all()
            )
            return [TaskRecord.model_validate(row) for row in rows]

        return await self.run("list_completed_tasks", work, user_id=user_id)

    async def create_manual_task(self, user_id: str, draft: TaskDraft) -> TaskRecord:
        def work(session: Session) -> TaskRecord:
            if draft.lead_id is not None:
                owned = session.query(Lead.id).filter(Lead.id == draft.lead_id, Lead.user_id == user_id).first()
                if owned is None:
                    raise NotFoundError(f"Lead {draft.lead_id} not found.")
            task = Task(
                user_id=user_id,
                lead_id=draft.lead_id,
                title=sanitize_text(draft.title, max_len=255),
                due_date=draft.due_date,
                priority=draft.priority.value,
                status=TaskStatus.PENDING.value,
                type=TaskType.MANUAL.value,
            )
            session.add(task)
            session.flush()
            return TaskRecord.model_validate(task)

        return await self.run("create_manual_task", work, user_id=user_id)

    async def update_task_status(self, task_id: str, user_id: str, status: TaskStatus) -> TaskRecord:
        def work(session: Session) -> TaskRecord:
            task = session.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()
            if task is None:
                raise NotFoundError(f"Task {task_id} not found.")
            task.status = status.value
            task.completed_at = utcnow() if status is TaskStatus.DONE else None
            session.flush()
            return TaskRecord.model_validate(task)

        return await self.run("update_task_status", work, user_id=user_id)
