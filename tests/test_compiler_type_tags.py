import ast

import pytest

from seamrpc.compiler.type_tags import TypeClassifier, collect_symbols, referenced_names, rename_names, type_tag

MODELS = '''
from typing import TypedDict, NotRequired
from pydantic import BaseModel

Point = TypedDict("Point", {"x": float, "y": float})


class Base(TypedDict):
    id: str


class Child(Base):
    tags: list[str]
    extra: NotRequired[dict[str, int]]


class Model(BaseModel):
    id: str


class HasSet(TypedDict):
    values: set[int]
'''

API_INIT = '''
from .models import Child
from . import models
import datetime as dt
'''


@pytest.fixture
def classifier():
    modules = {
        "pkg.models": collect_symbols(ast.parse(MODELS), "pkg.models"),
        "pkg": collect_symbols(ast.parse(API_INIT), "pkg", is_package=True),
    }
    return TypeClassifier(modules)


def _ann(text):
    return ast.parse(text, mode="eval").body


@pytest.mark.parametrize(
    "annotation",
    [
        "str",
        "None",
        "int | None",
        "Optional[float]",
        "Union[str, int]",
        "list[str]",
        "Sequence[int]",
        "tuple[int, ...]",
        "tuple[int, str]",
        "dict[str, list[int]]",
        "Mapping[str, bool]",
        "Literal['a', 1, None]",
        "'list[int]'",
        "datetime",
        "datetime.datetime",
        "RpcValue",
        "Annotated[int, 'meta']",
    ],
)
def test_builtin_shapes_are_serializable(classifier, annotation):
    assert classifier.is_serializable(_ann(annotation), "pkg.models")


@pytest.mark.parametrize(
    "annotation",
    ["object", "Any", "list", "dict[int, str]", "set[int]", "Callable[[], int]", "Model", "HasSet", "bytes"],
)
def test_other_shapes_are_not(classifier, annotation):
    assert not classifier.is_serializable(_ann(annotation), "pkg.models")


def test_typed_dict_forms_and_inheritance(classifier):
    assert classifier.is_serializable(_ann("Point"), "pkg.models")
    assert classifier.is_serializable(_ann("Child"), "pkg.models")


def test_names_resolve_through_relative_imports(classifier):
    assert classifier.is_serializable(_ann("Child"), "pkg")
    assert classifier.is_serializable(_ann("models.Point"), "pkg")
    assert not classifier.is_serializable(_ann("models.Model"), "pkg")


def test_missing_annotation_is_not_serializable(classifier):
    assert not classifier.is_serializable(None, "pkg")


def test_type_tag_unquotes_forward_refs_but_not_literals():
    assert type_tag(_ann("list['User']")) == "list[User]"
    assert type_tag(_ann("Literal['User']")) == "Literal['User']"
    assert type_tag(_ann("'Optional[User]'")) == "Optional[User]"


def test_referenced_names_and_rename():
    assert referenced_names("dict[str, list[User]] | Literal['Post']") == ["dict", "str", "list", "User", "Literal"]
    assert rename_names("list[User] | None", {"User": "api_User"}) == "list[api_User] | None"
    assert rename_names("User", {}) == "User"
