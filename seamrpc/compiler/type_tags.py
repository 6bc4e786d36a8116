"""Static classification of type annotations as wire-serializable.

Annotations are inspected as ``ast`` nodes; nothing is imported. Names are
resolved through per-module symbol tables built from the scanned sources so
that ``TypedDict`` classes and type aliases declared (or imported) anywhere
under the scan root count as structured values.
"""

from __future__ import annotations

import ast
import copy
from dataclasses import dataclass, field

SCALAR_NAMES = frozenset({"str", "int", "float", "bool", "None", "NoneType"})
TIMESTAMP_NAMES = frozenset({"datetime", "datetime.datetime"})
VALUE_ALIASES = frozenset({"RpcValue", "RpcPrimitive"})

SEQUENCE_NAMES = frozenset({"list", "List", "Sequence", "MutableSequence"})
TUPLE_NAMES = frozenset({"tuple", "Tuple"})
MAPPING_NAMES = frozenset({"dict", "Dict", "Mapping", "MutableMapping"})
# Wrappers whose first argument carries the value type.
PASSTHROUGH_NAMES = frozenset({"Optional", "Annotated", "Required", "NotRequired", "ReadOnly"})

_TYPED_DICT_NAMES = frozenset({"TypedDict", "typing.TypedDict", "typing_extensions.TypedDict"})


def dotted_name(node: ast.expr) -> str | None:
    """Return ``a.b.c`` for a Name/Attribute chain, else None."""
    parts: list[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return ".".join(reversed(parts))


def _last_component(name: str) -> str:
    return name.rsplit(".", 1)[-1]


def parse_forward_ref(text: str) -> ast.expr | None:
    try:
        return ast.parse(text.strip(), mode="eval").body
    except SyntaxError:
        return None


def _is_literal(node: ast.Subscript) -> bool:
    name = dotted_name(node.value)
    return name is not None and _last_component(name) == "Literal"


class _Unquote(ast.NodeTransformer):
    def visit_Subscript(self, node: ast.Subscript) -> ast.AST:
        if _is_literal(node):
            return node
        self.generic_visit(node)
        return node

    def visit_Constant(self, node: ast.Constant) -> ast.AST:
        if isinstance(node.value, str):
            parsed = parse_forward_ref(node.value)
            if parsed is not None:
                return self.visit(parsed)
        return node


def type_tag(node: ast.expr) -> str:
    """Normalized source text of an annotation, forward references unquoted."""
    return ast.unparse(_Unquote().visit(copy.deepcopy(node)))


@dataclass(slots=True)
class ModuleSymbols:
    """Type-level names declared or imported at the top of one module."""

    module_path: str
    is_package: bool = False
    typed_dicts: dict[str, list[ast.expr]] = field(default_factory=dict)
    typed_dict_bases: dict[str, list[ast.expr]] = field(default_factory=dict)
    aliases: dict[str, ast.expr] = field(default_factory=dict)
    # local name -> (absolute module, imported name); name is None for ``import x as y``
    imports: dict[str, tuple[str, str | None]] = field(default_factory=dict)

    def declared_types(self) -> set[str]:
        return set(self.typed_dicts) | set(self.aliases)


def collect_symbols(tree: ast.Module, module_path: str, *, is_package: bool = False) -> ModuleSymbols:
    """Build the symbol table of a parsed module."""
    symbols = ModuleSymbols(module_path=module_path, is_package=is_package)
    for node in tree.body:
        if isinstance(node, ast.ClassDef):
            _collect_class(symbols, node)
        elif isinstance(node, ast.Assign):
            if len(node.targets) == 1 and isinstance(node.targets[0], ast.Name):
                _collect_assign(symbols, node.targets[0].id, node.value)
        elif isinstance(node, ast.AnnAssign):
            if isinstance(node.target, ast.Name) and node.value is not None:
                if _last_component(dotted_name(node.annotation) or "") == "TypeAlias":
                    symbols.aliases[node.target.id] = node.value
        elif _is_type_statement(node):
            symbols.aliases[node.name.id] = node.value
        elif isinstance(node, ast.ImportFrom):
            base = _resolve_import_base(module_path, node, is_package=is_package)
            for alias in node.names:
                if alias.name == "*":
                    continue
                symbols.imports[alias.asname or alias.name] = (base, alias.name)
        elif isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    symbols.imports[alias.asname] = (alias.name, None)
                else:
                    head = alias.name.split(".", 1)[0]
                    symbols.imports[head] = (head, None)
    return symbols


def _is_type_statement(node: ast.stmt) -> bool:
    type_alias = getattr(ast, "TypeAlias", None)
    return type_alias is not None and isinstance(node, type_alias)


def _collect_class(symbols: ModuleSymbols, node: ast.ClassDef) -> None:
    # Any class with plain named bases is recorded; it only classifies as a
    # structured value when its base chain ends at TypedDict.
    base_names = [dotted_name(b) for b in node.bases]
    if not base_names or None in base_names:
        return
    symbols.typed_dicts[node.name] = [
        stmt.annotation
        for stmt in node.body
        if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name)
    ]
    symbols.typed_dict_bases[node.name] = [
        b for b, name in zip(node.bases, base_names) if name not in _TYPED_DICT_NAMES
    ]


def _collect_assign(symbols: ModuleSymbols, name: str, value: ast.expr) -> None:
    if isinstance(value, ast.Call) and dotted_name(value.func) in _TYPED_DICT_NAMES:
        # Functional form: Name = TypedDict("Name", {"field": T, ...})
        if len(value.args) >= 2 and isinstance(value.args[1], ast.Dict):
            symbols.typed_dicts[name] = [v for v in value.args[1].values if v is not None]
            symbols.typed_dict_bases[name] = []
        return
    if isinstance(value, ast.Call):
        return
    symbols.aliases[name] = value


def _resolve_import_base(module_path: str, node: ast.ImportFrom, *, is_package: bool) -> str:
    if not node.level:
        return node.module or ""
    parts = module_path.split(".") if module_path else []
    # ``from . import x`` inside pkg/mod.py refers to pkg; inside pkg/__init__.py also to pkg.
    drop = node.level - 1 if is_package else node.level
    if drop:
        parts = parts[:-drop] if drop <= len(parts) else []
    if node.module:
        parts.append(node.module)
    return ".".join(p for p in parts if p)


class TypeClassifier:
    """Decides whether annotations describe wire-serializable values."""

    def __init__(self, modules: dict[str, ModuleSymbols], extra_types: list[str] | tuple[str, ...] = ()):
        self._modules = modules
        self._extra = frozenset(extra_types)

    def is_serializable(self, node: ast.expr | None, module_path: str) -> bool:
        if node is None:
            return False
        return self._check(node, module_path, set())

    def _check(self, node: ast.expr, module: str, visiting: set[tuple[str, str]]) -> bool:
        if isinstance(node, ast.Constant):
            if node.value is None:
                return True
            if isinstance(node.value, str):
                parsed = parse_forward_ref(node.value)
                return parsed is not None and self._check(parsed, module, visiting)
            return False
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._check(node.left, module, visiting) and self._check(node.right, module, visiting)
        if isinstance(node, ast.Subscript):
            return self._check_generic(node, module, visiting)
        name = dotted_name(node)
        if name is None:
            return False
        return self._check_name(name, module, visiting)

    def _check_name(self, name: str, module: str, visiting: set[tuple[str, str]]) -> bool:
        if name in SCALAR_NAMES or name in TIMESTAMP_NAMES or name in self._extra:
            return True
        if _last_component(name) in VALUE_ALIASES:
            return True
        if "." in name:
            head, rest = name.split(".", 1)
            target = self._modules.get(module)
            imported = target.imports.get(head) if target else None
            if imported is not None and imported[1] is None:
                return self._check_symbol(imported[0], rest, visiting)
            if imported is not None:
                return self._check_symbol(f"{imported[0]}.{imported[1]}", rest, visiting)
            return False
        return self._check_symbol(module, name, visiting)

    def _check_symbol(self, module: str, name: str, visiting: set[tuple[str, str]]) -> bool:
        if "." in name:
            head, rest = name.split(".", 1)
            return self._check_symbol(f"{module}.{head}", rest, visiting)
        symbols = self._find_module(module)
        if symbols is None:
            return False
        key = (symbols.module_path, name)
        if key in visiting:
            return True
        if name in symbols.typed_dicts:
            visiting.add(key)
            try:
                fields_ok = all(self._check(f, symbols.module_path, visiting) for f in symbols.typed_dicts[name])
                bases_ok = all(
                    self._check(b, symbols.module_path, visiting)
                    for b in symbols.typed_dict_bases.get(name, [])
                )
                return fields_ok and bases_ok
            finally:
                visiting.discard(key)
        if name in symbols.aliases:
            visiting.add(key)
            try:
                return self._check(symbols.aliases[name], symbols.module_path, visiting)
            finally:
                visiting.discard(key)
        if name in symbols.imports:
            target_module, target_name = symbols.imports[name]
            if target_name is None:
                return False
            if target_name in SCALAR_NAMES or f"{target_module}.{target_name}" in TIMESTAMP_NAMES:
                return True
            if target_name in VALUE_ALIASES or target_name in self._extra:
                return True
            return self._check_symbol(target_module, target_name, visiting)
        return False

    def _find_module(self, module: str) -> ModuleSymbols | None:
        if module in self._modules:
            return self._modules[module]
        # Absolute imports may carry the package prefix above the scan root.
        parts = module.split(".")
        for start in range(1, len(parts)):
            candidate = ".".join(parts[start:])
            if candidate in self._modules:
                return self._modules[candidate]
        return None

    def _check_generic(self, node: ast.Subscript, module: str, visiting: set[tuple[str, str]]) -> bool:
        base = dotted_name(node.value)
        if base is None:
            return False
        kind = _last_component(base)
        args = list(node.slice.elts) if isinstance(node.slice, ast.Tuple) else [node.slice]

        if kind in SEQUENCE_NAMES:
            return len(args) == 1 and self._check(args[0], module, visiting)
        if kind in TUPLE_NAMES:
            if len(args) == 2 and isinstance(args[1], ast.Constant) and args[1].value is Ellipsis:
                return self._check(args[0], module, visiting)
            return all(self._check(a, module, visiting) for a in args)
        if kind in MAPPING_NAMES:
            return (
                len(args) == 2
                and dotted_name(args[0]) == "str"
                and self._check(args[1], module, visiting)
            )
        if kind in PASSTHROUGH_NAMES:
            return self._check(args[0], module, visiting)
        if kind == "Union":
            return all(self._check(a, module, visiting) for a in args)
        if kind == "Literal":
            return all(
                isinstance(a, ast.Constant) and (a.value is None or isinstance(a.value, (str, int, float, bool)))
                for a in args
            )
        return False


def referenced_names(tag: str) -> list[str]:
    """Head names a type tag refers to, in source order, skipping Literal values."""
    node = parse_forward_ref(tag)
    names: list[str] = []

    def visit(child: ast.AST) -> None:
        if isinstance(child, ast.Subscript) and _is_literal(child):
            visit(child.value)
            return
        if isinstance(child, ast.Name):
            if child.id not in names:
                names.append(child.id)
            return
        for sub in ast.iter_child_nodes(child):
            visit(sub)

    if node is not None:
        visit(node)
    return names


class _Rename(ast.NodeTransformer):
    def __init__(self, mapping: dict[str, str]):
        self.mapping = mapping

    def visit_Subscript(self, node: ast.Subscript) -> ast.AST:
        if _is_literal(node):
            node.value = self.visit(node.value)
            return node
        self.generic_visit(node)
        return node

    def visit_Name(self, node: ast.Name) -> ast.AST:
        if node.id in self.mapping:
            return ast.copy_location(ast.Name(id=self.mapping[node.id], ctx=node.ctx), node)
        return node


def rename_names(tag: str, mapping: dict[str, str]) -> str:
    """Rewrite head names of a type tag, e.g. ``User`` -> ``api_users_User``."""
    if not mapping:
        return tag
    node = parse_forward_ref(tag)
    if node is None:
        return tag
    return ast.unparse(_Rename(mapping).visit(node))
