"""Input and output guardrails."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Union

from ..errors import (
    GuardrailTripwireTriggered,
    InputGuardrailTripwireTriggered,
    OutputGuardrailTripwireTriggered,
    UserError,
)
from .state import RunContext

if TYPE_CHECKING:
    from .agent import Agent

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardrailResult:
    """Outcome of a guardrail check.

    Args:
        tripwire_triggered: Whether the check failed
        reason: Why the check failed
        info: Optional extra data for callers
    """

    tripwire_triggered: bool = False
    reason: str | None = None
    info: Any = None

    @classmethod
    def passed(cls, info: Any = None) -> GuardrailResult:
        return cls(tripwire_triggered=False, info=info)

    @classmethod
    def trip(cls, reason: str, info: Any = None) -> GuardrailResult:
        return cls(tripwire_triggered=True, reason=reason, info=info)


GuardrailFunction = Callable[
    [RunContext, "Agent", Any],
    Union[GuardrailResult, bool, Awaitable[Union[GuardrailResult, bool]]],
]


@dataclass(frozen=True)
class _Guardrail:
    fn: GuardrailFunction
    name: str

    async def evaluate(
        self, context: RunContext, agent: Agent, payload: Any
    ) -> GuardrailResult:
        result = self.fn(context, agent, payload)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, bool):
            # ``True`` means the payload is acceptable.
            return GuardrailResult(tripwire_triggered=not result)
        if not isinstance(result, GuardrailResult):
            raise UserError(
                f"Guardrail '{self.name}' must return GuardrailResult or bool, "
                f"got {type(result).__name__}"
            )
        return result


@dataclass(frozen=True)
class InputGuardrail(_Guardrail):
    """Check run against the input before the model is called."""

    kind: Literal["input"] = "input"


@dataclass(frozen=True)
class OutputGuardrail(_Guardrail):
    """Check run against the final output before the run completes."""

    kind: Literal["output"] = "output"


def _decorator(cls: type[_Guardrail], fn: Callable | None, name: str | None) -> Any:
    def wrapper(f: Callable) -> _Guardrail:
        return cls(fn=f, name=name or getattr(f, "__name__", "guardrail"))

    if fn is None:
        return wrapper
    return wrapper(fn)


def input_guardrail(_fn: Callable | None = None, *, name: str | None = None) -> Any:
    """Decorator creating an ``InputGuardrail`` from ``fn(context, agent, payload)``."""
    return _decorator(InputGuardrail, _fn, name)


def output_guardrail(_fn: Callable | None = None, *, name: str | None = None) -> Any:
    """Decorator creating an ``OutputGuardrail`` from ``fn(context, agent, output)``."""
    return _decorator(OutputGuardrail, _fn, name)


async def evaluate_guardrails(
    kind: Literal["input", "output"],
    guardrails: list[_Guardrail],
    payload: Any,
    context: RunContext,
    agent: Agent,
) -> None:
    """Run guardrails in order, raising on the first trip.

    Args:
        kind: Which tripwire exception to raise
        guardrails: Checks in configuration order
        payload: Input or final output being checked
        context: Run context
        agent: Active agent

    Raises:
        InputGuardrailTripwireTriggered: If ``kind == "input"`` and a check trips
        OutputGuardrailTripwireTriggered: If ``kind == "output"`` and a check trips
    """
    error_cls: type[GuardrailTripwireTriggered] = (
        InputGuardrailTripwireTriggered
        if kind == "input"
        else OutputGuardrailTripwireTriggered
    )
    for guardrail in guardrails:
        result = await guardrail.evaluate(context, agent, payload)
        LOGGER.debug(
            "%s guardrail %s: tripped=%s", kind, guardrail.name, result.tripwire_triggered
        )
        if result.tripwire_triggered:
            raise error_cls(guardrail.name, result.reason, payload)
