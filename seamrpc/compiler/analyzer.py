"""Static discovery of RPC-eligible server functions.

Source modules under a root directory are parsed with ``ast`` and never
imported. A function is eligible when it is exported, declared ``async def``
(not an async generator), takes only positional parameters, and every
parameter and the return value carry annotations that classify as
serializable (see ``seamrpc.compiler.type_tags``).
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field

from seamrpc.compiler.type_tags import ModuleSymbols, TypeClassifier, collect_symbols, type_tag
from seamrpc.config.schema import CompilerConfig
from seamrpc.core.serialization import validate_serializable
from seamrpc.core.types import MethodDescriptor, ParameterDescriptor

_ALWAYS_SKIPPED = {"__pycache__"}


class ScanOptions(BaseModel):
    """Scan filters and failure policy."""

    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    fail_on_error: bool = False
    extra_types: list[str] = Field(default_factory=list)

    @classmethod
    def from_config(cls, config: CompilerConfig) -> ScanOptions:
        return cls(
            include=list(config.include),
            exclude=list(config.exclude),
            fail_on_error=config.fail_on_error,
            extra_types=list(config.extra_types),
        )


class ScanError(Exception):
    """Raised at the end of a scan with fail_on_error when any module failed."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        summary = "; ".join(self.errors[:3])
        more = f" (+{len(self.errors) - 3} more)" if len(self.errors) > 3 else ""
        super().__init__(f"scan failed for {len(self.errors)} module(s): {summary}{more}")


@dataclass(slots=True)
class DiscoveryResult:
    """Eligible descriptors plus the structural failures met on the way."""

    functions: list[MethodDescriptor] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    # Exported functions that failed an eligibility rule (is_eligible=False).
    skipped: list[MethodDescriptor] = field(default_factory=list)


@dataclass(slots=True)
class _ParsedModule:
    rel_path: str
    module_path: str
    tree: ast.Module
    is_package: bool


def module_path_for(rel_path: Path) -> tuple[str, bool]:
    """Dotted module path of a file relative to the scan root."""
    parts = list(rel_path.with_suffix("").parts)
    is_package = bool(parts) and parts[-1] == "__init__"
    if is_package:
        parts = parts[:-1]
    return ".".join(parts), is_package


class FunctionDiscoverer:
    """Walks a source tree and produces method descriptors."""

    def __init__(self, root: str | Path, options: ScanOptions | None = None):
        self.root = Path(root)
        self.options = options or ScanOptions()

    def discover(self) -> DiscoveryResult:
        result = DiscoveryResult()
        modules: list[_ParsedModule] = []
        for path in self._source_files():
            parsed = self._parse(path, result.errors)
            if parsed is not None:
                modules.append(parsed)

        symbols: dict[str, ModuleSymbols] = {
            m.module_path: collect_symbols(m.tree, m.module_path, is_package=m.is_package)
            for m in modules
        }
        classifier = TypeClassifier(symbols, self.options.extra_types)

        for module in sorted(modules, key=lambda m: m.module_path):
            eligible, skipped = self._module_functions(module, classifier)
            result.functions.extend(eligible)
            result.skipped.extend(skipped)
            logger.debug(
                "Scanned {}: {} eligible, {} skipped", module.rel_path, len(eligible), len(skipped)
            )

        logger.info(
            "Discovered {} RPC function(s) in {} module(s), {} error(s)",
            len(result.functions),
            len(modules),
            len(result.errors),
        )
        if result.errors and self.options.fail_on_error:
            raise ScanError(result.errors)
        return result

    def _source_files(self) -> list[Path]:
        if not self.root.is_dir():
            raise ScanError([f"{self.root}: scan root is not a directory"])
        bases = [self.root / inc for inc in self.options.include] if self.options.include else [self.root]
        files: set[Path] = set()
        for base in bases:
            if base.is_file() and base.suffix == ".py":
                files.add(base)
                continue
            if not base.is_dir():
                continue
            for path in base.rglob("*.py"):
                rel_dirs = path.relative_to(self.root).parts[:-1]
                if any(self._skip_dir(d) for d in rel_dirs):
                    continue
                files.add(path)
        return sorted(files, key=lambda p: p.relative_to(self.root).as_posix())

    def _skip_dir(self, name: str) -> bool:
        return name in _ALWAYS_SKIPPED or name.startswith(".") or name in self.options.exclude

    def _parse(self, path: Path, errors: list[str]) -> _ParsedModule | None:
        rel = path.relative_to(self.root)
        rel_posix = rel.as_posix()
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            errors.append(f"{rel_posix}: {e}")
            logger.warning("Cannot read {}: {}", rel_posix, e)
            return None
        try:
            tree = ast.parse(source, filename=rel_posix)
        except SyntaxError as e:
            errors.append(f"{rel_posix}: syntax error at line {e.lineno}: {e.msg}")
            logger.warning("Cannot parse {}: {}", rel_posix, e.msg)
            return None
        module_path, is_package = module_path_for(rel)
        return _ParsedModule(rel_posix, module_path, tree, is_package)

    def _module_functions(
        self, module: _ParsedModule, classifier: TypeClassifier
    ) -> tuple[list[MethodDescriptor], list[MethodDescriptor]]:
        exported = _exported_names(module.tree)
        eligible: list[MethodDescriptor] = []
        skipped: list[MethodDescriptor] = []
        for node in module.tree.body:
            if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                continue
            if not _is_exported(node.name, exported):
                continue
            descriptor = self._describe(node, module, classifier)
            (eligible if descriptor.is_eligible else skipped).append(descriptor)
        return eligible, skipped

    def _describe(
        self,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        module: _ParsedModule,
        classifier: TypeClassifier,
    ) -> MethodDescriptor:
        args = node.args
        positional = [*args.posonlyargs, *args.args]
        defaults_from = len(positional) - len(args.defaults)
        parameters = tuple(
            ParameterDescriptor(
                name=arg.arg,
                type_tag=type_tag(arg.annotation) if arg.annotation is not None else "",
                optional=index >= defaults_from,
                default=_literal_default(args.defaults[index - defaults_from]) if index >= defaults_from else None,
            )
            for index, arg in enumerate(positional)
        )
        eligible = (
            isinstance(node, ast.AsyncFunctionDef)
            and not _is_generator(node)
            and args.vararg is None
            and args.kwarg is None
            and not args.kwonlyargs
            and all(
                arg.annotation is not None and classifier.is_serializable(arg.annotation, module.module_path)
                for arg in positional
            )
            and classifier.is_serializable(node.returns, module.module_path)
        )
        return MethodDescriptor(
            name=node.name,
            module_path=module.module_path,
            is_eligible=eligible,
            parameters=parameters,
            return_type_tag=type_tag(node.returns) if node.returns is not None else "None",
            source_path=module.rel_path,
            line=node.lineno,
        )


def _literal_default(node: ast.expr) -> str | None:
    """Source text of a default that evaluates to a serializable literal."""
    try:
        value = ast.literal_eval(node)
    except (ValueError, TypeError, SyntaxError, RecursionError):
        return None
    return ast.unparse(node) if validate_serializable(value) else None


def _exported_names(tree: ast.Module) -> set[str] | None:
    """Names listed in a literal ``__all__``, or None when the module has none."""
    names: set[str] | None = None
    for node in tree.body:
        targets: list[ast.expr] = []
        value: ast.expr | None = None
        if isinstance(node, ast.Assign):
            targets, value = node.targets, node.value
        elif isinstance(node, (ast.AnnAssign, ast.AugAssign)):
            targets, value = [node.target], node.value
        if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in targets):
            continue
        if isinstance(value, (ast.List, ast.Tuple)):
            found = {e.value for e in value.elts if isinstance(e, ast.Constant) and isinstance(e.value, str)}
            names = found if isinstance(node, ast.Assign) or names is None else names | found
    return names


def _is_exported(name: str, exported: set[str] | None) -> bool:
    if exported is not None:
        return name in exported
    return not name.startswith("_")


def _is_generator(node: ast.AsyncFunctionDef | ast.FunctionDef) -> bool:
    """True when the body yields outside of nested scopes."""
    stack: list[ast.AST] = list(node.body)
    while stack:
        child = stack.pop()
        if isinstance(child, (ast.Yield, ast.YieldFrom)):
            return True
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda, ast.ClassDef)):
            continue
        stack.extend(ast.iter_child_nodes(child))
    return False


def discover_functions(root: str | Path, options: ScanOptions | None = None) -> DiscoveryResult:
    """Scan ``root`` and return its eligible functions."""
    return FunctionDiscoverer(root, options).discover()
