import ast
import json

import pytest

from seamrpc.compiler.generator import (
    CLIENT_STUBS_FILE,
    DEBUG_MANIFEST_FILE,
    INDEX_FILE,
    SERVER_REGISTRATIONS_FILE,
    TYPE_CONTRACTS_FILE,
    BindingGenerator,
    GeneratorOptions,
)
from seamrpc.core.types import MethodDescriptor, ParameterDescriptor


def _descriptor(name, module_path, params=(), returns="None", eligible=True, line=1):
    return MethodDescriptor(
        name=name,
        module_path=module_path,
        is_eligible=eligible,
        parameters=tuple(ParameterDescriptor(*p) for p in params),
        return_type_tag=returns,
        source_path=module_path.replace(".", "/") + ".py",
        line=line,
    )


@pytest.fixture
def descriptors():
    return [
        _descriptor("get_post", "api.posts", [("id", "str")], "Post | None", line=4),
        _descriptor("get_user", "api.users", [("id", "str")], "Optional[User]", line=10),
        _descriptor("list_users", "api.users", [("limit", "int", True)], "list[User]", line=20),
        _descriptor("sync_count", "api.users", [], "int", eligible=False),
    ]


@pytest.fixture
def generator():
    return BindingGenerator(GeneratorOptions(server_package="app.server"))


def test_generation_is_idempotent(generator, descriptors):
    assert generator.generate(descriptors) == generator.generate(list(descriptors))


def test_every_python_artifact_parses(generator, descriptors):
    files = generator.generate(descriptors).files()
    assert set(files) == {CLIENT_STUBS_FILE, SERVER_REGISTRATIONS_FILE, TYPE_CONTRACTS_FILE, DEBUG_MANIFEST_FILE, INDEX_FILE}
    for name, text in files.items():
        if name.endswith(".py"):
            ast.parse(text)


def test_client_stubs(generator, descriptors):
    text = generator.generate_client_stubs(descriptors)
    assert "from seamrpc.client import UNSET as _UNSET, rpc_call as _rpc_call" in text
    assert "from app.server.api.posts import Post" in text
    assert "from app.server.api.users import Optional, User" in text
    assert "async def get_user(id: str) -> Optional[User]:" in text
    assert '    return await _rpc_call("api.users.get_user", id)' in text
    assert "async def list_users(limit: int = _UNSET) -> list[User]:" in text
    assert '    return await _rpc_call("api.users.list_users", limit, param_names=("limit",))' in text
    assert "sync_count" not in text


def test_server_registrations(generator, descriptors):
    text = generator.generate_server_registrations(descriptors)
    assert "import app.server.api.posts as api_posts" in text
    assert text.count("import app.server.api.users as api_users") == 1
    assert 'registry.register("api.users.get_user", api_users.get_user)' in text
    assert '    "api.posts.get_post",' in text
    assert "def unregister_functions(registry: FunctionRegistry) -> None:" in text
    assert "sync_count" not in text


def test_type_contracts(generator, descriptors):
    text = generator.generate_type_contracts(descriptors)
    assert "class GetUserFunction(Protocol):" in text
    assert "    async def __call__(self, id: str) -> Optional[User]: ..." in text
    assert "    async def __call__(self, limit: int = ...) -> list[User]: ..." in text


def test_debug_manifest(generator, descriptors):
    manifest = json.loads(generator.generate_debug_manifest(descriptors))
    assert manifest["functionCount"] == 3
    assert list(manifest["routes"]) == ["api.posts.get_post", "api.users.get_user", "api.users.list_users"]
    assert manifest["routes"]["api.users.list_users"] == {
        "name": "list_users",
        "sourceLocation": "api/users.py:20",
        "parameters": [{"name": "limit", "typeTag": "int", "optional": True}],
        "returnTypeTag": "list[User]",
    }


def test_index_reexports(generator, descriptors):
    text = generator.generate_index(descriptors)
    assert "from .client_stubs import get_post, get_user, list_users" in text
    assert "from .contracts import GetPostFunction, GetUserFunction, ListUsersFunction" in text


def test_colliding_names_are_prefixed(generator):
    descriptors = [
        _descriptor("get", "api.posts", [("id", "str")], "Item"),
        _descriptor("get", "api.users", [("id", "str")], "Item"),
    ]
    stubs = generator.generate_client_stubs(descriptors)
    assert "async def api_posts_get(id: str) -> api_posts_Item:" in stubs
    assert "async def api_users_get(id: str) -> api_users_Item:" in stubs
    assert "from app.server.api.posts import Item as api_posts_Item" in stubs
    contracts = generator.generate_type_contracts(descriptors)
    assert "class ApiPostsGetFunction(Protocol):" in contracts


def test_literal_values_are_not_renamed(generator):
    descriptors = [
        _descriptor("a", "x", [("mode", "Literal['Item']")], "Item"),
        _descriptor("b", "y", [], "Item"),
    ]
    stubs = generator.generate_client_stubs(descriptors)
    assert "async def a(mode: Literal['Item']) -> x_Item:" in stubs


def test_empty_descriptor_list(generator):
    files = generator.generate([]).files()
    for name, text in files.items():
        if name.endswith(".py"):
            ast.parse(text)
    assert json.loads(files[DEBUG_MANIFEST_FILE]) == {"functionCount": 0, "routes": {}}


def test_root_module_needs_server_package():
    with pytest.raises(ValueError):
        BindingGenerator().generate_server_registrations([_descriptor("ping", "", [], "str")])


def test_literal_defaults_are_repeated_in_stubs(generator):
    descriptors = [
        _descriptor("page", "api.items", [("cursor", "str"), ("size", "int", True, "20"), ("order", "str", True, "'asc'")], "list[str]"),
        _descriptor(
            "scaled",
            "api.items",
            [("a", "int"), ("factor", "int", True), ("offset", "int", True, "0")],
            "int",
        ),
    ]
    text = generator.generate_client_stubs(descriptors)
    assert "async def page(cursor: str, size: int = 20, order: str = 'asc') -> list[str]:" in text
    assert '    return await _rpc_call("api.items.page", cursor, size, order)' in text
    # after a non-literal default every later optional falls back to UNSET
    assert "async def scaled(a: int, factor: int = _UNSET, offset: int = _UNSET) -> int:" in text
    assert 'param_names=("a", "factor", "offset"))' in text
    contracts = generator.generate_type_contracts(descriptors)
    assert "async def __call__(self, cursor: str, size: int = ..., order: str = ...) -> list[str]: ..." in contracts


def test_module_alias_collisions_get_suffix(generator):
    descriptors = [
        _descriptor("get", "api.users", [("id", "str")], "str"),
        _descriptor("get", "api_users", [("id", "str")], "str"),
    ]
    routes = generator.generate_server_registrations(descriptors)
    assert "import app.server.api.users as api_users" in routes
    assert "import app.server.api_users as api_users_2" in routes
    assert 'registry.register("api_users.get", api_users_2.get)' in routes
    stubs = generator.generate_client_stubs(descriptors)
    assert "async def api_users_get(id: str) -> str:" in stubs
    assert "async def api_users_2_get(id: str) -> str:" in stubs
