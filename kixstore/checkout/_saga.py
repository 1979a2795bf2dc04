"""
Compensated steps for the checkout handoff.

    handoff = (
        step(stage_action, compensate=unstage)
        .then(lambda staged: step(open_gateway_session(staged)))
    )
    match await run_chain(handoff):
        case Ok(result): ...
        case Error(failure): ...   # staged handoff already removed

When a later step fails, compensators of the steps that succeeded run in
reverse. A compensator that raises is logged and counted, and the rest
still run.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from combinators import lift as L
from kungfu import LazyCoroResult, Result, Ok, Error

from kixstore._logging import get_logger

log = get_logger("saga")

type Compensator[T] = Callable[[T], Awaitable[None]]
type RecordedCompensator[T] = tuple[T, Compensator[T]]


# ═══════════════════════════════════════════════════════════════════════════════
# Steps
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """Action plus the compensator recorded once the action succeeds."""

    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None

    def then[U, E2](self, f: Callable[[T], SagaStep[U, E2]]) -> Then[T, U, E, E2]:
        return Then(self, f)


@dataclass(frozen=True, slots=True)
class Then[T, U, E, E2]:
    inner: SagaStep[T, E]
    f: Callable[[T], SagaStep[U, E2]]


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    value: T
    steps_executed: int
    compensators_recorded: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    error: E
    step_failed: int
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
) -> SagaStep[T, E]:
    return SagaStep(action=action, compensate=compensate)


def from_async[T, E](
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    compensate: Compensator[T] | None = None,
) -> SagaStep[T, E]:
    """Step from a plain coroutine; exceptions become `on_error(exc)`."""
    return SagaStep(action=L.catching_async(action, on_error=on_error), compensate=compensate)


# ═══════════════════════════════════════════════════════════════════════════════
# Execution
# ═══════════════════════════════════════════════════════════════════════════════


async def _run_step[T, E](s: SagaStep[T, E], compensators: list[RecordedCompensator[T]]) -> Result[T, E]:
    match await s.action:
        case Ok(value):
            if s.compensate is not None:
                compensators.append((value, s.compensate))
            return Ok(value)
        case Error(e):
            return Error(e)


async def _compensate[T](compensators: list[RecordedCompensator[T]]) -> tuple[int, int]:
    """Reverse order. Returns (run, failed)."""
    ran = failed = 0
    for value, comp in reversed(compensators):
        try:
            await comp(value)
            ran += 1
        except Exception as exc:
            failed += 1
            log.error("compensation_failed", error=str(exc))
    return ran, failed


async def run[T, E](saga: SagaStep[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    compensators: list[RecordedCompensator[T]] = []
    match await _run_step(saga, compensators):
        case Ok(value):
            return Ok(SagaResult(value, steps_executed=1, compensators_recorded=len(compensators)))
        case Error(error):
            ran, failed = await _compensate(compensators)
            return Error(SagaError(error, step_failed=1, compensators_run=ran, compensators_failed=failed))


async def run_chain[T, U, E, E2](chain: Then[T, U, E, E2]) -> Result[SagaResult[U], SagaError[E | E2]]:
    first: list[RecordedCompensator[T]] = []
    second: list[RecordedCompensator[U]] = []

    match await _run_step(chain.inner, first):
        case Error(error):
            ran, failed = await _compensate(first)
            return Error(SagaError(error, step_failed=1, compensators_run=ran, compensators_failed=failed))
        case Ok(value):
            pass

    match await _run_step(chain.f(value), second):
        case Ok(final):
            return Ok(
                SagaResult(final, steps_executed=2, compensators_recorded=len(first) + len(second))
            )
        case Error(error):
            ran2, failed2 = await _compensate(second)
            ran1, failed1 = await _compensate(first)
            log.warning("saga_rolled_back", step_failed=2, compensators_run=ran1 + ran2)
            return Error(
                SagaError(
                    error,
                    step_failed=2,
                    compensators_run=ran1 + ran2,
                    compensators_failed=failed1 + failed2,
                )
            )


__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "SagaResult",
    "SagaError",
    "step",
    "from_async",
    "run",
    "run_chain",
)
