"""Binding generation from method descriptors.

Every ``generate_*`` method is a pure function of the descriptor list: the
same descriptors always produce byte-identical text.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable

from pydantic import BaseModel

from seamrpc.compiler.type_tags import referenced_names, rename_names
from seamrpc.config.schema import CompilerConfig
from seamrpc.core.types import MethodDescriptor

CLIENT_STUBS_FILE = "client_stubs.py"
SERVER_REGISTRATIONS_FILE = "server_routes.py"
TYPE_CONTRACTS_FILE = "contracts.py"
DEBUG_MANIFEST_FILE = "debug_manifest.json"
INDEX_FILE = "__init__.py"

HEADER = "Generated by seamrpc from server sources. Do not edit by hand."

# Names usable in annotations without an import.
_BUILTIN_TYPE_NAMES = frozenset({"str", "int", "float", "bool", "list", "dict", "tuple", "object"})


class GeneratorOptions(BaseModel):
    """Where generated code finds the server modules and the client runtime."""

    server_package: str = ""
    client_module: str = "seamrpc.client"

    @classmethod
    def from_config(cls, config: CompilerConfig) -> GeneratorOptions:
        return cls(server_package=config.server_package, client_module=config.client_module)


@dataclass(frozen=True, slots=True)
class GeneratedBindings:
    client_stubs: str
    server_registrations: str
    type_contracts: str
    debug_manifest: str
    index: str

    def files(self) -> dict[str, str]:
        """Output file name -> content."""
        return {
            CLIENT_STUBS_FILE: self.client_stubs,
            SERVER_REGISTRATIONS_FILE: self.server_registrations,
            TYPE_CONTRACTS_FILE: self.type_contracts,
            DEBUG_MANIFEST_FILE: self.debug_manifest,
            INDEX_FILE: self.index,
        }


def module_alias(module_path: str) -> str:
    return module_path.replace(".", "_") if module_path else "root"


def module_aliases(module_paths: Iterable[str]) -> dict[str, str]:
    """module_path -> unique alias; paths that flatten to the same alias get a numeric suffix."""
    aliases: dict[str, str] = {}
    taken: set[str] = set()
    for module_path in sorted(set(module_paths)):
        alias = base = module_alias(module_path)
        suffix = 2
        while alias in taken:
            alias = f"{base}_{suffix}"
            suffix += 1
        taken.add(alias)
        aliases[module_path] = alias
    return aliases


def pascal_case(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


class BindingGenerator:
    """Emits client stubs, server registrations, contracts and a debug manifest."""

    def __init__(self, options: GeneratorOptions | None = None):
        self.options = options or GeneratorOptions()

    # -- naming ---------------------------------------------------------------

    def import_path(self, module_path: str) -> str:
        full = ".".join(p for p in (self.options.server_package, module_path) if p)
        if not full:
            raise ValueError("functions declared in the scan root __init__.py need server_package set")
        return full

    @staticmethod
    def _eligible(descriptors: list[MethodDescriptor]) -> list[MethodDescriptor]:
        return [d for d in descriptors if d.is_eligible]

    @staticmethod
    def _stub_names(descriptors: list[MethodDescriptor]) -> dict[str, str]:
        """identity -> public stub name; names defined in several modules get the module alias."""
        aliases = module_aliases(d.module_path for d in descriptors)
        modules_by_name: dict[str, set[str]] = {}
        for d in descriptors:
            modules_by_name.setdefault(d.name, set()).add(d.module_path)
        return {
            d.identity: d.name if len(modules_by_name[d.name]) == 1 else f"{aliases[d.module_path]}_{d.name}"
            for d in descriptors
        }

    @staticmethod
    def _type_imports(descriptors: list[MethodDescriptor]) -> tuple[dict[str, list[tuple[str, str]]], dict[str, dict[str, str]]]:
        """Collect the names annotations need.

        Returns (module_path -> [(name, local alias)], module_path -> rename map).
        A name imported from more than one module is aliased with the module alias.
        """
        aliases = module_aliases(d.module_path for d in descriptors)
        sources: dict[str, set[str]] = {}
        order: list[tuple[str, str]] = []
        for d in descriptors:
            tags = [p.type_tag for p in d.parameters] + [d.return_type_tag]
            for tag in tags:
                for name in referenced_names(tag):
                    if name in _BUILTIN_TYPE_NAMES:
                        continue
                    modules = sources.setdefault(name, set())
                    if d.module_path not in modules:
                        modules.add(d.module_path)
                        order.append((d.module_path, name))

        imports: dict[str, list[tuple[str, str]]] = {}
        renames: dict[str, dict[str, str]] = {}
        for module_path, name in order:
            local = name if len(sources[name]) == 1 else f"{aliases[module_path]}_{name}"
            imports.setdefault(module_path, []).append((name, local))
            if local != name:
                renames.setdefault(module_path, {})[name] = local
        return imports, renames

    def _type_checking_block(self, imports: dict[str, list[tuple[str, str]]]) -> list[str]:
        if not imports:
            return []
        lines = ["if TYPE_CHECKING:"]
        for module_path in sorted(imports):
            names = ", ".join(
                name if name == local else f"{name} as {local}"
                for name, local in sorted(imports[module_path])
            )
            lines.append(f"    from {self.import_path(module_path)} import {names}")
        return lines

    @staticmethod
    def _stub_defaults(d: MethodDescriptor) -> list[str | None]:
        """Default text per parameter for the client stub.

        Literal defaults are repeated verbatim. From the first optional
        parameter without a literal default on, stubs fall back to UNSET, so
        omitted trailing arguments are dropped and the server applies its own.
        """
        defaults: list[str | None] = []
        literal = True
        for p in d.parameters:
            if not p.optional:
                defaults.append(None)
                continue
            literal = literal and p.default is not None
            defaults.append(p.default if literal else "_UNSET")
        return defaults

    @staticmethod
    def _signature(d: MethodDescriptor, renames: dict[str, str], defaults: list[str | None]) -> tuple[str, str]:
        params = []
        for p, default in zip(d.parameters, defaults):
            annotation = rename_names(p.type_tag, renames)
            params.append(f"{p.name}: {annotation}" if default is None else f"{p.name}: {annotation} = {default}")
        return ", ".join(params), rename_names(d.return_type_tag, renames)

    # -- artifacts ------------------------------------------------------------

    def generate_client_stubs(self, descriptors: list[MethodDescriptor]) -> str:
        eligible = self._eligible(descriptors)
        stub_names = self._stub_names(eligible)
        imports, renames = self._type_imports(eligible)
        stub_defaults = {d.identity: self._stub_defaults(d) for d in eligible}
        uses_unset = any("_UNSET" in defaults for defaults in stub_defaults.values())

        runtime = "UNSET as _UNSET, rpc_call as _rpc_call" if uses_unset else "rpc_call as _rpc_call"
        block = self._type_checking_block(imports)
        lines = [f'"""RPC client stubs. {HEADER}"""', "", "from __future__ import annotations", ""]
        if block:
            lines.extend(["from typing import TYPE_CHECKING", ""])
        lines.extend([f"from {self.options.client_module} import {runtime}", ""])
        if block:
            lines.extend(block + [""])
        lines.extend(_all_block(stub_names[d.identity] for d in eligible))

        for d in eligible:
            defaults = stub_defaults[d.identity]
            params, returns = self._signature(d, renames.get(d.module_path, {}), defaults)
            args = "".join(f", {p.name}" for p in d.parameters)
            if "_UNSET" in defaults:
                names = ", ".join(json.dumps(p.name) for p in d.parameters)
                args += f", param_names=({names},)" if len(d.parameters) == 1 else f", param_names=({names})"
            lines.extend([
                "",
                "",
                f"async def {stub_names[d.identity]}({params}) -> {returns}:",
                f'    return await _rpc_call("{d.identity}"{args})',
            ])
        return "\n".join(lines) + "\n"

    def generate_server_registrations(self, descriptors: list[MethodDescriptor]) -> str:
        eligible = self._eligible(descriptors)
        aliases = module_aliases(d.module_path for d in eligible)
        module_paths = sorted(aliases)
        lines = [
            f'"""RPC server registrations. {HEADER}"""',
            "",
            "from __future__ import annotations",
            "",
            "from typing import TYPE_CHECKING",
            "",
        ]
        lines.extend(f"import {self.import_path(mp)} as {aliases[mp]}" for mp in module_paths)
        if module_paths:
            lines.append("")
        lines.extend([
            "if TYPE_CHECKING:",
            "    from seamrpc.server import FunctionRegistry",
            "",
            *_tuple_block("FUNCTION_NAMES", [json.dumps(d.identity) for d in eligible]),
            "",
            "",
            "def register_functions(registry: FunctionRegistry) -> None:",
        ])
        if eligible:
            lines.extend(
                f'    registry.register("{d.identity}", {aliases[d.module_path]}.{d.name})'
                for d in eligible
            )
        else:
            lines.append("    return None")
        lines.extend([
            "",
            "",
            "def unregister_functions(registry: FunctionRegistry) -> None:",
            "    for name in FUNCTION_NAMES:",
            "        registry.unregister(name)",
        ])
        return "\n".join(lines) + "\n"

    def generate_type_contracts(self, descriptors: list[MethodDescriptor]) -> str:
        eligible = self._eligible(descriptors)
        contract_names = self._contract_names(eligible)
        imports, renames = self._type_imports(eligible)
        lines = [
            f'"""RPC function contracts. {HEADER}"""',
            "",
            "from __future__ import annotations",
            "",
            "from typing import TYPE_CHECKING, Protocol" if imports else "from typing import Protocol",
            "",
        ]
        block = self._type_checking_block(imports)
        if block:
            lines.extend(block + [""])
        lines.extend(_all_block(contract_names[d.identity] for d in eligible))
        for d in eligible:
            params, returns = self._signature(
                d, renames.get(d.module_path, {}), ["..." if p.optional else None for p in d.parameters]
            )
            call_params = f"self, {params}" if params else "self"
            lines.extend([
                "",
                "",
                f"class {contract_names[d.identity]}(Protocol):",
                f'    """Contract of ``{d.identity}``."""',
                "",
                f"    async def __call__({call_params}) -> {returns}: ...",
            ])
        return "\n".join(lines) + "\n"

    def _contract_names(self, descriptors: list[MethodDescriptor]) -> dict[str, str]:
        stub_names = self._stub_names(descriptors)
        return {identity: f"{pascal_case(name)}Function" for identity, name in stub_names.items()}

    def generate_debug_manifest(self, descriptors: list[MethodDescriptor]) -> str:
        eligible = self._eligible(descriptors)
        manifest = {
            "functionCount": len(eligible),
            "routes": {
                d.identity: {
                    "name": d.name,
                    "sourceLocation": d.source_location,
                    "parameters": [p.to_dict() for p in d.parameters],
                    "returnTypeTag": d.return_type_tag,
                }
                for d in eligible
            },
        }
        return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"

    def generate_index(self, descriptors: list[MethodDescriptor]) -> str:
        eligible = self._eligible(descriptors)
        stubs = self._stub_names(eligible)
        contracts = self._contract_names(eligible)
        stub_names = [stubs[d.identity] for d in eligible]
        contract_names = [contracts[d.identity] for d in eligible]
        lines = [f'"""Generated RPC bindings. {HEADER}"""', ""]
        if stub_names:
            lines.append(f"from .{CLIENT_STUBS_FILE[:-3]} import {', '.join(stub_names)}")
            lines.append(f"from .{TYPE_CONTRACTS_FILE[:-3]} import {', '.join(contract_names)}")
            lines.append("")
        lines.extend(_all_block([*stub_names, *contract_names]))
        return "\n".join(lines) + "\n"

    def generate(self, descriptors: list[MethodDescriptor]) -> GeneratedBindings:
        return GeneratedBindings(
            client_stubs=self.generate_client_stubs(descriptors),
            server_registrations=self.generate_server_registrations(descriptors),
            type_contracts=self.generate_type_contracts(descriptors),
            debug_manifest=self.generate_debug_manifest(descriptors),
            index=self.generate_index(descriptors),
        )


def _all_block(names) -> list[str]:
    names = list(names)
    if not names:
        return ["__all__: list[str] = []"]
    return ["__all__ = ["] + [f'    "{name}",' for name in names] + ["]"]


def _tuple_block(name: str, items: list[str]) -> list[str]:
    if not items:
        return [f"{name}: tuple[str, ...] = ()"]
    return [f"{name} = ("] + [f"    {item}," for item in items] + [")"]
