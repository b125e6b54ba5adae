"""Compensating-action stack for multi-system workflows.

A workflow that writes to more than one system (identity provider plus
database rows) cannot use a single transaction. Each critical step that
creates something registers an undo action; when a later critical step
fails, the registered undos run in reverse order of creation and the
failure propagates.

Steps carry an explicit criticality:

- CRITICAL: failure unwinds the stack and raises.
- BEST_EFFORT: failure is logged and the workflow continues. Nothing is
  unwound.

Undo failures are logged and swallowed so the original error still
reaches the caller.

Usage:
    async with CompensationStack("create_account") as saga:
        identity = await saga.step(
            "create identity user",
            lambda: provider.create_user(email, password),
            undo=lambda created: provider.delete_user(created.id),
        )
        ...
        saga.clear()
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Undo = Callable[[], Awaitable[object]]
ErrorFactory = Callable[[Exception], Exception]


class StepCriticality(Enum):
    """How a step's failure affects the workflow."""

    CRITICAL = "critical"
    BEST_EFFORT = "best_effort"


@dataclass(frozen=True)
class _Compensation:
    name: str
    undo: Undo


class CompensationStack:
    """Undo stack for one workflow run.

    Not reusable across runs: create one per request.

    Args:
        workflow: Name used in log messages.
    """

    def __init__(self, workflow: str) -> None:
        self._workflow = workflow
        self._compensations: list[_Compensation] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._compensations)

    @property
    def pending(self) -> list[str]:
        """Names of registered compensations, oldest first."""
        return [c.name for c in self._compensations]

    def register(self, name: str, undo: Undo) -> None:
        """Push an undo action for a step that just succeeded."""
        self._compensations.append(_Compensation(name=name, undo=undo))

    def clear(self) -> None:
        """Keep everything done so far. Later failures unwind nothing."""
        self._compensations.clear()
        self._committed = True

    async def unwind(self) -> list[str]:
        """Run registered undos newest first and empty the stack.

        Returns:
            Names of compensations whose undo raised.
        """
        failed: list[str] = []
        while self._compensations:
            compensation = self._compensations.pop()
            try:
                await compensation.undo()
            except Exception:
                failed.append(compensation.name)
                logger.warning(
                    "%s: compensation '%s' failed",
                    self._workflow,
                    compensation.name,
                    exc_info=True,
                )
            else:
                logger.info(
                    "%s: compensated '%s'", self._workflow, compensation.name
                )
        return failed

    async def step(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
        *,
        undo: Callable[[T], Awaitable[object]] | None = None,
        error: ErrorFactory | None = None,
    ) -> T:
        """Run a critical step.

        Args:
            name: Step name for logs and the undo stack.
            action: Zero-argument coroutine factory performing the step.
            undo: Given the step's result, returns the coroutine that
                reverses it. Registered only after the step succeeds.
            error: Maps the step's exception to the one raised to the
                caller. Defaults to re-raising the original.

        Returns:
            The action's result.

        Raises:
            Exception: The step's error (or ``error(exc)``) after every
                previously registered compensation has run.
        """
        try:
            result = await action()
        except Exception as exc:
            logger.warning("%s: step '%s' failed", self._workflow, name, exc_info=True)
            await self.unwind()
            if error is None:
                raise
            raise error(exc) from exc

        if undo is not None:
            self.register(name, lambda: undo(result))
        return result

    async def best_effort(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
    ) -> T | None:
        """Run a step whose failure must not fail the workflow.

        Returns:
            The action's result, or None if it raised.
        """
        try:
            return await action()
        except Exception:
            logger.warning(
                "%s: best-effort step '%s' failed",
                self._workflow,
                name,
                exc_info=True,
            )
            return None

    async def __aenter__(self) -> "CompensationStack":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        # Failures raised between steps still unwind what was registered.
        if exc is not None and not self._committed:
            await self.unwind()


async def run_step(
    name: str,
    action: Callable[[], Awaitable[T]],
    criticality: StepCriticality,
    stack: CompensationStack,
    *,
    undo: Callable[[T], Awaitable[object]] | None = None,
    error: ErrorFactory | None = None,
) -> T | None:
    """Run one workflow step on ``stack`` with the given criticality.

    Best-effort steps ignore ``undo`` and ``error``: they never register a
    compensation and never raise.
    """
    if criticality is StepCriticality.BEST_EFFORT:
        return await stack.best_effort(name, action)
    return await stack.step(name, action, undo=undo, error=error)
