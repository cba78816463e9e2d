"""Final output matching."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

if TYPE_CHECKING:
    from .items import ModelResponse


class OutputSchema:
    """Validation contract for structured final outputs."""

    def __init__(self, output_type: Any):
        self.output_type = output_type
        self._adapter: TypeAdapter[Any] = TypeAdapter(output_type)

    @cached_property
    def json_schema(self) -> dict[str, Any]:
        return self._adapter.json_schema()

    @property
    def name(self) -> str:
        return getattr(self.output_type, "__name__", "final_output")

    def validate_json(self, text: str) -> Any:
        """Parse ``text`` as JSON and validate it, raising ``ValidationError``."""
        return self._adapter.validate_json(text)


@dataclass(frozen=True)
class OutputMatch:
    matched: bool
    value: Any = None


NO_MATCH = OutputMatch(matched=False)


def match_final_output(
    response: ModelResponse, schema: OutputSchema | None
) -> OutputMatch:
    """Decide whether ``response`` is the final output.

    Any tool call or hand-off in the response means the run is not done. With
    no schema, a response carrying text matches and the text is the output.
    With a schema, the text must validate; a mismatch is not an error, the
    loop simply continues.
    """
    if any(c.kind != "text" for c in response.output):
        return NO_MATCH

    text = response.text
    if text is None:
        return NO_MATCH
    if schema is None:
        return OutputMatch(matched=True, value=text)

    try:
        value = schema.validate_json(text)
    except ValidationError:
        return NO_MATCH
    return OutputMatch(matched=True, value=value)
