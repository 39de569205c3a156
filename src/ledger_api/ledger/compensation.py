"""
Compensating Actions

Multi-call writes against the row store are not transactional. A write sequence registers an undo
action after each successful step; if a later step raises, the registered actions run in reverse
order and the original exception propagates.

Usage:
    async with CompensatingActions("create contractor") as undo:
        contractor = await contractors.create(patch)
        undo.add("delete contractor", lambda: contractors.delete(contractor.id))
        await links.link(project_id, contractor.id)
"""

from typing import Awaitable
from typing import Callable
from typing import List
from typing import Tuple

from loguru import logger

UndoAction = Callable[[], Awaitable]


class CompensatingActions:
    """Ordered list of undo actions for one write sequence."""

    def __init__(self, operation: str):
        self.operation = operation
        self._actions: List[Tuple[str, UndoAction]] = []

    def add(self, description: str, action: UndoAction) -> None:
        self._actions.append((description, action))

    def __len__(self) -> int:
        return len(self._actions)

    async def rollback(self) -> List[str]:
        """
        Run every registered action, newest first.

        A failing undo action is logged and the remaining ones still run.

        Returns:
            Descriptions of the actions that failed
        """
        failed = []
        while self._actions:
            description, action = self._actions.pop()
            try:
                await action()
                logger.info("Compensating action completed", operation=self.operation, action=description)
            except Exception as e:
                failed.append(description)
                logger.opt(exception=e).error(
                    "Compensating action failed",
                    operation=self.operation,
                    action=description,
                    error=str(e),
                )
        return failed

    async def __aenter__(self) -> "CompensatingActions":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is not None and self._actions:
            logger.warning(
                "{} failed, rolling back {} step(s)",
                self.operation,
                len(self._actions),
                operation=self.operation,
                error=str(exc),
            )
            await self.rollback()
        else:
            self._actions.clear()
        return False
