"""Pytest fixtures shared by the seamrpc tests."""

import itertools
from datetime import datetime, timezone

import pytest

from seamrpc.client import LocalTransport, RpcClient
from seamrpc.server import FunctionRegistry, RpcServer
from seamrpc.utils.exceptions import validation_error

_ids = itertools.count(1)


async def create_user(user: dict) -> dict:
    """Sample handler: validates the email and stamps the new user."""
    if not user.get("name"):
        raise validation_error("Name is required", "name")
    if "@" not in user.get("email", ""):
        raise validation_error("Email must contain @", "email")
    return {
        "id": f"user-{next(_ids)}",
        "name": user["name"],
        "email": user["email"],
        "createdAt": datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    }


async def create_user_untyped(user: dict) -> dict:
    """Same handler without the taxonomy helpers."""
    if "@" not in user.get("email", ""):
        raise ValueError("invalid email")
    return {"id": "u1", **user}


async def add(a: int, b: int = 0) -> int:
    return a + b


@pytest.fixture
def registry():
    reg = FunctionRegistry()
    reg.register("api.users.create_user", create_user)
    reg.register("api.users.create_user_untyped", create_user_untyped)
    reg.register("math.add", add)
    return reg


@pytest.fixture
def server(registry):
    return RpcServer(registry)


@pytest.fixture
def local_client(server):
    async def _no_sleep(_delay):
        return None

    return RpcClient(LocalTransport(server), timeout_seconds=5, retry_attempts=0, sleep=_no_sleep)


@pytest.fixture
def write_module(tmp_path):
    """Write a source module under tmp_path/server and return the scan root."""
    root = tmp_path / "server"
    root.mkdir()

    def _write(rel_path: str, source: str):
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return root

    _write.root = root
    return _write
