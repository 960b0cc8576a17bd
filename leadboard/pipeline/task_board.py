"""Daily mission task board with optimistic task completion."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from leadboard.auth.session import UserSession, require_user
from leadboard.core.enums import PRIORITY_BUCKETS, TaskStatus
from leadboard.core.exceptions import LeadboardException
from leadboard.models.base import utcnow
from leadboard.schemas import TaskDraft, TaskRecord
from leadboard.services.task_store import TaskStore

logger = logging.getLogger(__name__)


def bucket_by_priority(tasks: Iterable[TaskRecord]) -> dict[str, list[TaskRecord]]:
    """Group tasks into P1/P2/P3 by priority, keeping input order."""
    buckets: dict[str, list[TaskRecord]] = {bucket: [] for bucket in PRIORITY_BUCKETS.values()}
    for task in tasks:
        buckets[PRIORITY_BUCKETS[task.priority]].append(task)
    return buckets


class TaskBoardController:
    def __init__(self, store: TaskStore, session: UserSession | None) -> None:
        self._store = store
        self._session = session
        self.pending_tasks: tuple[TaskRecord, ...] = ()
        self.completed_tasks: tuple[TaskRecord, ...] = ()
        self.last_error: LeadboardException | None = None
        self._pending_writes: set[asyncio.Task] = set()

    @property
    def user_id(self) -> str:
        return require_user(self._session)

    def buckets(self) -> dict[str, list[TaskRecord]]:
        return bucket_by_priority(self.pending_tasks)

    async def refresh(self) -> None:
        user_id = self.user_id
        try:
            pending, completed = await asyncio.gather(
                self._store.list_pending_tasks(user_id),
                self._store.list_completed_tasks(user_id),
            )
        except LeadboardException as exc:
            self.last_error = exc
            logger.warning(
                "tasks.refresh.failed",
                extra={"event": "tasks.refresh.failed", "user_id": user_id, "error_code": exc.code},
            )
            raise
        self.pending_tasks = tuple(pending)
        self.completed_tasks = tuple(completed)
        self.last_error = None

    def complete_task(self, task_id: str) -> asyncio.Task | None:
        """Move a pending task to the completed list before the store confirms it.

        Returns None for an unknown task. On a rejected write both lists are
        refreshed from the store and the failure is raised from the task.
        """
        user_id = self.user_id
        task = next((item for item in self.pending_tasks if item.id == task_id), None)
        if task is None:
            return None

        loop = asyncio.get_running_loop()
        done = task.model_copy(update={"status": TaskStatus.DONE, "completed_at": utcnow()})
        self.pending_tasks = tuple(item for item in self.pending_tasks if item.id != task_id)
        self.completed_tasks = (done, *self.completed_tasks)

        write = loop.create_task(self._confirm_completion(user_id, task_id))
        self._pending_writes.add(write)
        write.add_done_callback(self._write_settled)
        return write

    async def _confirm_completion(self, user_id: str, task_id: str) -> TaskRecord:
        try:
            stored = await self._store.update_task_status(task_id, user_id, TaskStatus.DONE)
        except Exception:
            logger.warning(
                "tasks.complete.rejected",
                exc_info=True,
                extra={"event": "tasks.complete.rejected", "user_id": user_id, "task_id": task_id},
            )
            try:
                await self.refresh()
            except LeadboardException:
                logger.exception(
                    "tasks.reload.failed",
                    extra={"event": "tasks.reload.failed", "user_id": user_id, "task_id": task_id},
                )
            raise
        logger.info(
            "tasks.completed",
            extra={"event": "tasks.completed", "user_id": user_id, "task_id": task_id},
        )
        return stored

    def _write_settled(self, write: asyncio.Task) -> None:
        self._pending_writes.discard(write)
        if not write.cancelled():
            write.exception()

    async def wait_for_pending(self) -> list:
        if not self._pending_writes:
            return []
        return await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    async def add_manual_task(self, draft: TaskDraft) -> TaskRecord:
        user_id = self.user_id
        created = await self._store.create_manual_task(user_id, draft)
        self.pending_tasks = (created, *self.pending_tasks)
        logger.info(
            "tasks.manual.created",
            extra={"event": "tasks.manual.created", "user_id": user_id, "task_id": created.id},
        )
        return created
