import json
import sys

import pytest

from tessera.errors import RemoteTaskError, UnresolvedTaskDefinition, qualified_name, resolve_error_class
from tessera.tasks.future import rebuild_error
from tessera.tasks.models import TaskFailure


class Outer:
    class InnerError(Exception):
        pass


def test_qualified_name_of_builtin():
    assert qualified_name(ValueError) == "ValueError"


def test_qualified_name_of_nested_class():
    assert qualified_name(Outer.InnerError) == f"{__name__}.Outer.InnerError"


@pytest.mark.parametrize(
    "kind, expected",
    [
        ("ValueError", ValueError),
        ("json.JSONDecodeError", json.JSONDecodeError),
        ("tessera.errors.UnresolvedTaskDefinition", UnresolvedTaskDefinition),
        (f"{__name__}.Outer.InnerError", Outer.InnerError),
    ],
)
def test_resolve_error_class(kind, expected):
    assert resolve_error_class(kind) is expected


@pytest.mark.parametrize(
    "kind",
    ["", "NoSuchError", "no_such_module.Error", "json.dumps", "SystemExit", "StandardError", "Foo::Bar"],
)
def test_resolve_error_class_ignores_non_exceptions(kind):
    assert resolve_error_class(kind) is None


def test_resolve_error_class_leaves_unloaded_modules_alone(tmp_path, monkeypatch):
    (tmp_path / "tessera_unloaded_errors.py").write_text("class FarAwayError(Exception):\n    pass\n")
    monkeypatch.syspath_prepend(str(tmp_path))
    kind = "tessera_unloaded_errors.FarAwayError"

    assert resolve_error_class(kind) is None
    assert "tessera_unloaded_errors" not in sys.modules

    error = rebuild_error(TaskFailure(error_class=kind, message="far away"))

    assert type(error) is RemoteTaskError
    assert error.kind == kind
    assert "tessera_unloaded_errors" not in sys.modules


def test_rebuild_error_chains_remote_details():
    failure = TaskFailure(error_class="KeyError", message="missing", backtrace=["a.py:1"])

    error = rebuild_error(failure)

    assert isinstance(error, KeyError)
    assert isinstance(error.__cause__, RemoteTaskError)
    assert error.__cause__.trace == ["a.py:1"]


def test_remote_task_error_str():
    assert str(RemoteTaskError("Foo::Bar", "went wrong")) == "Foo::Bar: went wrong"
