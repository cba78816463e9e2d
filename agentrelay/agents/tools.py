"""Tool decorator, schema generation and argument validation."""

from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from ..errors import ToolExecutionError, UserError
from .state import RunContext


@dataclass(frozen=True)
class Tool:
    """A named, schema-validated function the model may call.

    Args:
        name: Unique name within an agent
        description: Description shown to the model
        args_model: Pydantic model validating the call arguments
        fn: The implementation, sync or async
        takes_context: Whether ``fn`` receives the ``RunContext`` first
    """

    name: str
    description: str
    args_model: type[BaseModel]
    fn: Callable[..., Any]
    takes_context: bool = False

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON schema of the tool arguments."""
        return self.args_model.model_json_schema()

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    def validate(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate raw arguments, raising ``ToolExecutionError`` when invalid."""
        try:
            parsed = self.args_model.model_validate(arguments)
        except ValidationError as exc:
            raise ToolExecutionError(
                self.name, f"invalid arguments: {exc.errors(include_url=False)}"
            ) from exc
        return {name: getattr(parsed, name) for name in self.args_model.model_fields}

    async def execute(self, arguments: dict[str, Any], context: RunContext) -> Any:
        """Validate ``arguments`` and invoke the tool."""
        kwargs = self.validate(arguments)
        if self.takes_context:
            result = self.fn(context, **kwargs)
        else:
            result = self.fn(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


def tool(
    _fn: Callable | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Any:
    """Decorator turning a function into a ``Tool``.

    A first parameter annotated with ``RunContext`` receives the run context
    and is left out of the schema.

    Example:
        >>> @tool
        ... async def get_weather(city: str) -> str:
        ...     '''Get the weather for a city.'''
        ...     return f"Sunny in {city}"
    """

    def wrapper(fn: Callable) -> Tool:
        return function_tool(fn, name=name, description=description)

    if _fn is None:
        return wrapper

    return wrapper(_fn)


def function_tool(
    fn: Callable,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Tool:
    """Build a ``Tool`` from a function signature and docstring."""
    tool_name = name or getattr(fn, "__name__", "tool")
    doc = inspect.getdoc(fn) or ""
    args_model, takes_context = _build_args_model(fn, tool_name, doc)
    return Tool(
        name=tool_name,
        description=description or _summary_line(doc) or tool_name,
        args_model=args_model,
        fn=fn,
        takes_context=takes_context,
    )


def as_tool(value: Tool | Callable) -> Tool:
    """Accept either a ``Tool`` or a plain function."""
    if isinstance(value, Tool):
        return value
    if callable(value):
        return function_tool(value)
    raise UserError(f"Expected a Tool or a callable, got {type(value).__name__}")


def _is_context_annotation(annotation: Any) -> bool:
    return annotation is RunContext or typing.get_origin(annotation) is RunContext


def _build_args_model(
    fn: Callable, tool_name: str, doc: str
) -> tuple[type[BaseModel], bool]:
    """Generate a pydantic model from a function signature."""
    sig = inspect.signature(fn)
    try:
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError):
        hints = {}
    param_descriptions = _parse_google_docstring(doc)

    fields: dict[str, Any] = {}
    takes_context = False
    for index, (param_name, param) in enumerate(sig.parameters.items()):
        if param_name == "self":
            continue
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise UserError(f"Tool '{tool_name}' cannot take *args or **kwargs")

        annotation = hints.get(param_name, Any)
        if index == 0 and _is_context_annotation(annotation):
            takes_context = True
            continue

        default = param.default if param.default is not param.empty else ...
        fields[param_name] = (
            annotation,
            Field(default, description=param_descriptions.get(param_name)),
        )

    model = create_model(
        f"{tool_name}_args",
        __config__=ConfigDict(extra="forbid"),
        **fields,
    )
    return model, takes_context


def _summary_line(doc: str) -> str:
    """First paragraph of a docstring, joined into one line."""
    first_para = []
    for line in doc.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.endswith(":"):
            break
        first_para.append(stripped)
    return " ".join(first_para)


def _parse_google_docstring(doc: str) -> dict[str, str]:
    """Parse Google-style docstring to extract parameter descriptions."""
    if not doc:
        return {}

    param_descriptions = {}
    in_args_section = False
    current_param = None

    for line in doc.split("\n"):
        stripped = line.strip()

        # Check section transitions
        if stripped in ("Args:", "Arguments:", "Parameters:"):
            in_args_section = True
            continue
        if (
            in_args_section
            and stripped
            and stripped.endswith(":")
            and not line.startswith(" ")
        ):
            break

        # Parse parameter lines
        if in_args_section and stripped:
            if ":" in stripped:
                param_part, desc_part = stripped.split(":", 1)
                param_name = param_part.split("(")[0].strip()
                if param_name:
                    current_param = param_name
                    param_descriptions[param_name] = desc_part.strip()
            elif current_param:
                param_descriptions[current_param] += " " + stripped

    return param_descriptions
