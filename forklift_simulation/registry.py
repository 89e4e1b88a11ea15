"""In-memory registry of tasks and forklifts.

The registry is the single owner of every :class:`Task` and
:class:`Forklift`. Forklifts refer to their task by id only
(``current_task_id``) and tasks refer back through ``assigned_forklift``;
:meth:`Registry.assign` and :meth:`Registry.release` keep the two in step.
"""

from __future__ import annotations

import logging

from .enums import TaskStatus
from .models import Forklift, Position, Task

logger = logging.getLogger(__name__)


class Registry:
    """Ordered collections of tasks and forklifts keyed by id."""

    def __init__(
        self,
        forklifts: list[Forklift] | None = None,
        tasks: list[Task] | None = None,
    ) -> None:
        self._forklifts: dict[str, Forklift] = {}
        self._tasks: dict[str, Task] = {}
        for forklift in forklifts or []:
            self.add_forklift(forklift)
        for task in tasks or []:
            self.add_task(task)

    # -- forklifts ------------------------------------------------------

    @property
    def forklifts(self) -> list[Forklift]:
        """Forklifts in registration order (the tick iteration order)."""
        return list(self._forklifts.values())

    def add_forklift(self, forklift: Forklift) -> Forklift:
        if forklift.id in self._forklifts:
            raise ValueError(f"duplicate forklift id: {forklift.id}")
        self._forklifts[forklift.id] = forklift
        return forklift

    def remove_forklift(self, forklift_id: str) -> Forklift | None:
        forklift = self._forklifts.get(forklift_id)
        if forklift is None:
            return None
        self.release(forklift, requeue=True)
        del self._forklifts[forklift_id]
        return forklift

    def get_forklift(self, forklift_id: str) -> Forklift:
        return self._forklifts[forklift_id]

    def find_forklift(self, forklift_id: str) -> Forklift | None:
        return self._forklifts.get(forklift_id)

    def next_forklift_id(self) -> str:
        n = len(self._forklifts) + 1
        while f"forklift-{n}" in self._forklifts:
            n += 1
        return f"forklift-{n}"

    def positions(self) -> dict[Position, str]:
        """``{position: forklift_id}``; the last forklift wins on shared cells."""
        return {f.position: f.id for f in self._forklifts.values()}

    # -- tasks ----------------------------------------------------------

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def add_task(self, task: Task) -> Task:
        if task.id in self._tasks:
            raise ValueError(f"duplicate task id: {task.id}")
        self._tasks[task.id] = task
        return task

    def get_task(self, task_id: str) -> Task:
        return self._tasks[task_id]

    def find_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def task_of(self, forklift: Forklift) -> Task | None:
        """The task *forklift* currently holds, resolved through the registry."""
        if forklift.current_task_id is None:
            return None
        return self._tasks.get(forklift.current_task_id)

    def holder_of(self, task: Task) -> Forklift | None:
        """The forklift whose ``current_task_id`` references *task*, if any."""
        for forklift in self._forklifts.values():
            if forklift.current_task_id == task.id:
                return forklift
        return None

    def pending_tasks(self) -> list[Task]:
        return [
            t for t in self._tasks.values()
            if t.status == TaskStatus.PENDING and t.assigned_forklift is None
        ]

    def open_task_count(self) -> int:
        return sum(1 for t in self._tasks.values() if t.status != TaskStatus.COMPLETED)

    # -- ownership ------------------------------------------------------

    def assign(self, task: Task, forklift: Forklift) -> None:
        """Hand *task* to *forklift*. Raises ``ValueError`` if another forklift holds it."""
        holder = self.holder_of(task)
        if holder is not None and holder is not forklift:
            raise ValueError(f"{task.id} is already held by {holder.id}")
        forklift.current_task_id = task.id
        task.assigned_forklift = forklift.id

    def release(self, forklift: Forklift, requeue: bool = False) -> Task | None:
        """Drop *forklift*'s task reference; with *requeue* an unfinished task goes back to pending."""
        task = self.task_of(forklift)
        forklift.current_task_id = None
        if task is not None and requeue and task.status != TaskStatus.COMPLETED:
            task.status = TaskStatus.PENDING
            task.assigned_forklift = None
            task.assigned_at = None
            task.started_at = None
            logger.info("[Registry] %s returned to the pending pool", task.id)
        return task

    def clear(self) -> None:
        self._forklifts.clear()
        self._tasks.clear()
