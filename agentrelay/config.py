"""Run configuration and environment-bound settings.

``RunConfig`` and ``ModelSettings`` are plain dataclasses passed to
``Runner.run``. ``Settings`` loads process-wide defaults (model, credentials,
turn limit) from ``AGENTRELAY_*`` environment variables or a ``.env`` file.

Example:
    from agentrelay.config import get_settings

    settings = get_settings()  # Cached
    print(settings.model, settings.max_turns)
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from .agents.guardrails import InputGuardrail, OutputGuardrail
    from .agents.protocols import ModelProvider
    from .tracing import TraceSink

DEFAULT_MAX_TURNS = 10


class Settings(BaseSettings):
    """Environment defaults for providers and runs."""

    model: str = Field(default="gpt-4o-mini")
    api_key: Optional[str] = Field(default=None)
    base_url: Optional[str] = Field(default=None)
    max_turns: int = Field(default=DEFAULT_MAX_TURNS, ge=1)
    max_retries: int = Field(default=2, ge=0)
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="AGENTRELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings loaded from the environment."""
    return Settings()


@dataclass(frozen=True)
class ModelSettings:
    """Sampling settings sent with each model request.

    ``None`` means "use the provider default". ``resolve`` layers an override
    on top, keeping every field the override leaves unset.
    """

    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    tool_choice: Literal["auto", "required", "none"] | str | None = None
    parallel_tool_calls: bool | None = None
    extra_args: dict[str, Any] = field(default_factory=dict)

    def resolve(self, override: ModelSettings | None) -> ModelSettings:
        if override is None:
            return self
        changes: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(override, f.name)
            if f.name == "extra_args":
                changes[f.name] = {**self.extra_args, **value}
            elif value is not None:
                changes[f.name] = value
        return replace(self, **changes)

    def to_request_kwargs(self) -> dict[str, Any]:
        """Non-empty settings as keyword arguments for a provider SDK."""
        kwargs = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "extra_args" and getattr(self, f.name) is not None
        }
        kwargs.update(self.extra_args)
        return kwargs


@dataclass
class RunConfig:
    """Settings for a single run.

    Args:
        max_turns: Maximum number of model calls before the run fails. Falls
            back to ``Settings.max_turns``.
        provider: Model provider used for agents that do not carry their own.
        model: Model name overriding every agent's ``model`` string.
        model_settings: Settings layered over each agent's model settings.
        input_guardrails: Guardrails run on the input in addition to the
            starting agent's.
        output_guardrails: Guardrails run on the final output in addition to
            the final agent's.
        input_guardrails_every_turn: Re-run input guardrails before every
            model call instead of only the first.
        max_tool_concurrency: Upper bound on tool calls executing at once.
            ``None`` runs every call of a response concurrently.
        raise_on_unknown_tool: Abort the run when the model calls a tool the
            active agent does not have, instead of reporting an error result.
        trace_sink: Receives structured trace events.
        tracing_disabled: Skip trace recording entirely.
    """

    max_turns: int | None = None
    provider: ModelProvider | None = None
    model: str | None = None
    model_settings: ModelSettings | None = None
    input_guardrails: list[InputGuardrail] = field(default_factory=list)
    output_guardrails: list[OutputGuardrail] = field(default_factory=list)
    input_guardrails_every_turn: bool = False
    max_tool_concurrency: int | None = None
    raise_on_unknown_tool: bool = False
    trace_sink: TraceSink | None = None
    tracing_disabled: bool = False

    def resolved_max_turns(self) -> int:
        if self.max_turns is not None:
            return self.max_turns
        return get_settings().max_turns
