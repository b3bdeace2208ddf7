"""Tool descriptors and tool-backend wire types.

Discovery returns ToolDescriptor instances; execution returns a
ToolCallResponse. Both accept the camelCase keys used on the wire
(``inputSchema``, ``readOnlyHint``, ``isError``...) as well as their
snake_case field names.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic.alias_generators import to_camel


_JSON_TYPE_MAP: dict[str, type] = {
    "string": str,
    "number": float,
    "integer": int,
    "boolean": bool,
}


def _json_schema_to_python_type(prop_schema: dict, prop_name: str, parent_name: str) -> type:
    """Convert a single JSON Schema property to a Python type annotation.

    Handles: primitive types, typed arrays, nested objects, enums, and
    falls back to Any for unrecognized schemas ($ref, anyOf, oneOf, etc.).
    """
    if "enum" in prop_schema:
        values = tuple(prop_schema["enum"])
        return Literal[values]  # type: ignore[valid-type]

    schema_type = prop_schema.get("type")

    if schema_type is None:
        return Any

    # Type unions such as ["string", "null"]
    if isinstance(schema_type, list):
        non_null = [t for t in schema_type if t != "null"]
        if len(non_null) != 1:
            return Any
        inner = _json_schema_to_python_type({**prop_schema, "type": non_null[0]}, prop_name, parent_name)
        return Optional[inner] if "null" in schema_type else inner

    if schema_type in _JSON_TYPE_MAP:
        return _JSON_TYPE_MAP[schema_type]

    if schema_type == "array":
        items = prop_schema.get("items")
        if items and "type" in items and items["type"] in _JSON_TYPE_MAP:
            return list[_JSON_TYPE_MAP[items["type"]]]
        return list

    if schema_type == "object":
        if "properties" in prop_schema:
            nested_name = f"{parent_name}_{prop_name}"
            return _schema_to_pydantic(nested_name, prop_schema)
        return dict

    return Any


def _schema_to_pydantic(tool_name: str, schema: dict) -> type[BaseModel]:
    """Convert a tool's inputSchema to a Pydantic model used to validate arguments.

    Non-required fields become Optional with their schema default (or None).
    """
    properties = schema.get("properties", {})
    required = set(schema.get("required", []))
    fields: dict[str, Any] = {}

    for prop_name, prop_schema in properties.items():
        python_type = _json_schema_to_python_type(prop_schema, prop_name, tool_name)
        is_required = prop_name in required
        default = ... if is_required else prop_schema.get("default", None)
        description = prop_schema.get("description", "")

        if not is_required and default is None:
            python_type = Optional[python_type]

        fields[prop_name] = (python_type, Field(default=default, description=description))

    return create_model(f"{tool_name}_Input", **fields)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolAnnotations(_WireModel):
    read_only_hint: Optional[bool] = None
    idempotent_hint: Optional[bool] = None
    destructive_hint: Optional[bool] = None


class ToolDescriptor(_WireModel):
    """A tool advertised by the capability backend."""

    name: str
    description: str = ""
    input_schema: dict = Field(default_factory=dict)
    annotations: Optional[ToolAnnotations] = None

    def parameters(self) -> dict:
        """Return the JSON schema of the tool's arguments."""
        return self.input_schema or {"type": "object", "properties": {}}

    def input_model(self) -> type[BaseModel]:
        return _schema_to_pydantic(self.name, self.input_schema)

    def hints(self) -> list[str]:
        if self.annotations is None:
            return []
        hints = []
        if self.annotations.read_only_hint:
            hints.append("read-only")
        if self.annotations.idempotent_hint:
            hints.append("idempotent")
        if self.annotations.destructive_hint:
            hints.append("DESTRUCTIVE")
        return hints


class ToolContent(_WireModel):
    type: Literal["text", "resource"]
    text: Optional[str] = None
    uri: Optional[str] = None
    mime_type: Optional[str] = None

    def render(self) -> str:
        if self.type == "text" and self.text:
            return self.text
        if self.type == "resource" and self.uri:
            if self.text:
                return f"Resource: {self.uri}\n{self.text}"
            return f"Resource: {self.uri}"
        return ""


class ToolCallResponse(_WireModel):
    """What the tool backend reports for one execution."""

    success: bool = True
    content: list[ToolContent] = Field(default_factory=list)
    is_error: bool = False
    execution_time_ms: Optional[int] = None
    error: Optional[str] = None

    def text(self) -> str:
        return "\n".join(part.render() for part in self.content)


def format_tools_for_prompt(tools: list[ToolDescriptor]) -> str:
    """Render the tool list for a system prompt, one tool per line."""
    if not tools:
        return "(No tools available)"

    lines = []
    for tool in tools:
        hints = tool.hints()
        suffix = f" [{', '.join(hints)}]" if hints else ""
        lines.append(f"- {tool.name}: {tool.description}{suffix}")
    return "\n".join(lines)
