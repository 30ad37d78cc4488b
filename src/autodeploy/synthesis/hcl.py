"""HCL rendering for plan attribute values.

Literals are escaped so that user-derived strings can never be read as
Terraform template directives. References render as native expressions.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from ..errors import SynthesisInvariantViolation
from ..schemas.plan import Block, Interpolation, Ref, Var

INDENT = "  "
IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
PLACEHOLDER = re.compile(r"\{\{|\}\}|\{(\d+)\}")


def escape_string(value: str) -> str:
    """Escape a literal for use inside an HCL quoted string (without the quotes)."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return escaped.replace("${", "$${").replace("%{", "%%{")


def quote(value: str) -> str:
    return f'"{escape_string(value)}"'


class Renderer:
    """Renders values against one plan's resource types and declared variables."""

    def __init__(self, resource_types: Mapping[str, str], variables: Mapping[str, Any]):
        self.resource_types = resource_types
        self.variables = variables

    def expression(self, ref: Ref | Var) -> str:
        if isinstance(ref, Var):
            if ref.name not in self.variables:
                raise SynthesisInvariantViolation(f"Variable '{ref.name}' is used but not declared")
            return f"var.{ref.name}"
        resource_type = self.resource_types.get(ref.logical_name)
        if resource_type is None:
            raise SynthesisInvariantViolation(
                f"Reference to unknown resource '{ref.logical_name}'"
            )
        return f"{resource_type}.{ref.logical_name}.{ref.attribute}"

    def interpolation(self, value: Interpolation) -> str:
        parts: list[str] = []
        literal: list[str] = []

        def flush(before_expression: bool) -> None:
            text = escape_string("".join(literal))
            literal.clear()
            if before_expression and text.endswith("$"):
                # "$" directly before "${" would read as an escape
                stripped = text.rstrip("$")
                text = stripped + '${"$"}' * (len(text) - len(stripped))
            parts.append(text)

        pos = 0
        for match in PLACEHOLDER.finditer(value.template):
            literal.append(value.template[pos:match.start()])
            pos = match.end()
            token = match.group(0)
            if token in ("{{", "}}"):
                literal.append(token[0])
                continue
            index = int(match.group(1))
            if index >= len(value.args):
                raise SynthesisInvariantViolation(
                    f"Interpolation placeholder {{{index}}} has no argument"
                )
            flush(before_expression=True)
            parts.append("${" + self.expression(value.args[index]) + "}")
        literal.append(value.template[pos:])
        flush(before_expression=False)
        return '"' + "".join(parts) + '"'

    def value(self, value: Any, depth: int = 0) -> str:
        if isinstance(value, (Ref, Var)):
            return self.expression(value)
        if isinstance(value, Interpolation):
            return self.interpolation(value)
        if isinstance(value, Block):
            raise SynthesisInvariantViolation("Nested block used where a value is expected")
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return repr(value)
        if isinstance(value, str):
            return quote(value)
        if isinstance(value, (list, tuple)):
            return "[" + ", ".join(self.value(item, depth) for item in value) + "]"
        if isinstance(value, dict):
            if not value:
                return "{}"
            pad = INDENT * (depth + 1)
            lines = ["{"]
            for key, item in value.items():
                name = key if IDENTIFIER.match(key) else quote(key)
                lines.append(f"{pad}{name} = {self.value(item, depth + 1)}")
            lines.append(INDENT * depth + "}")
            return "\n".join(lines)
        raise SynthesisInvariantViolation(f"Cannot render value of type {type(value).__name__}")

    def body(self, attributes: Mapping[str, Any], depth: int = 1) -> list[str]:
        """Render block contents: ``key = value`` lines and nested blocks."""
        pad = INDENT * depth
        lines: list[str] = []
        for key, value in attributes.items():
            if isinstance(value, Block):
                lines.extend(self.block(key, value, depth))
            elif isinstance(value, list) and value and all(isinstance(item, Block) for item in value):
                for item in value:
                    lines.extend(self.block(key, item, depth))
            else:
                lines.append(f"{pad}{key} = {self.value(value, depth)}")
        return lines

    def block(self, name: str, block: Block, depth: int) -> list[str]:
        pad = INDENT * depth
        if not block.attributes:
            return [f"{pad}{name} {{}}"]
        return [f"{pad}{name} {{", *self.body(block.attributes, depth + 1), f"{pad}}}"]
