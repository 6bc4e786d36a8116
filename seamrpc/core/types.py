"""Descriptor types produced by function discovery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """One positional parameter of a discovered function.

    ``default`` is the source text of a literal default value, or None when
    the parameter is required or its default is not a literal.
    """

    name: str
    type_tag: str
    optional: bool = False
    default: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "typeTag": self.type_tag, "optional": self.optional}
        if self.default is not None:
            data["default"] = self.default
        return data


@dataclass(frozen=True, slots=True)
class MethodDescriptor:
    """Static description of one server function.

    ``identity`` (``module_path + "." + name``) is the method name used on
    the wire.
    """

    name: str
    module_path: str
    is_eligible: bool
    parameters: tuple[ParameterDescriptor, ...] = field(default_factory=tuple)
    return_type_tag: str = "None"
    source_path: str = ""
    line: int = 0

    @property
    def identity(self) -> str:
        return f"{self.module_path}.{self.name}" if self.module_path else self.name

    @property
    def source_location(self) -> str:
        return f"{self.source_path}:{self.line}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "modulePath": self.module_path,
            "isEligible": self.is_eligible,
            "parameters": [p.to_dict() for p in self.parameters],
            "returnTypeTag": self.return_type_tag,
            "sourceLocation": self.source_location,
        }
