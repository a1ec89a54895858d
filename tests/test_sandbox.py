"""
Tests for the execution sandbox.
"""

from unittest.mock import Mock

import pytest
from activity_core import ActivityRuntimeError
from activity_core import CompileError
from activity_core import ExecutionSandbox


@pytest.fixture
def capability():
    return Mock(spec=["fail", "finish", "cancel", "on_cancel", "state", "params", "root"])


def failure_of(capability):
    capability.fail.assert_called_once()
    return capability.fail.call_args.args[0]


def test_returns_exported_hooks(capability):
    sandbox = ExecutionSandbox()

    exports = sandbox.run(
        "def on_create(activity, params):\n    return 'created'\nexports['on_create'] = on_create\n",
        capability,
    )

    assert set(exports) == {"on_create"}
    assert exports["on_create"](None, {}) == "created"
    capability.fail.assert_not_called()


def test_export_table_is_read_only(capability):
    exports = ExecutionSandbox().run("exports['a'] = len\n", capability)

    with pytest.raises(TypeError):
        exports["b"] = len  # type: ignore[index]


def test_later_mutation_of_exports_is_not_visible(capability):
    code = (
        "def on_create(activity, params):\n"
        "    exports['sneaky'] = print\n"
        "exports['on_create'] = on_create\n"
    )
    exports = ExecutionSandbox().run(code, capability)

    exports["on_create"](None, {})

    assert "sneaky" not in exports


def test_compile_error_reported_not_raised(capability):
    exports = ExecutionSandbox().run("def broken(:\n    pass\n", capability, filename="<activity:bad>")

    assert dict(exports) == {}
    error = failure_of(capability)
    assert isinstance(error, CompileError)
    assert error.filename == "<activity:bad>"
    assert error.lineno == 1
    assert isinstance(error.__cause__, SyntaxError)


def test_top_level_exception_reported_not_raised(capability):
    exports = ExecutionSandbox().run(
        "exports['first'] = len\nraise ValueError('nope')\nexports['second'] = len\n",
        capability,
    )

    assert set(exports) == {"first"}
    error = failure_of(capability)
    assert isinstance(error, ActivityRuntimeError)
    assert isinstance(error.__cause__, ValueError)


def test_capability_injected_as_activity(capability):
    ExecutionSandbox().run("activity.finish(7)\n", capability)

    capability.finish.assert_called_once_with(7)


def test_each_run_gets_a_fresh_scope(capability):
    code = "seen = 'shared' in dir()\nshared = 1\nexports['seen'] = lambda: seen\n"
    sandbox = ExecutionSandbox()

    first = sandbox.run(code, capability)
    second = sandbox.run(code, capability)

    assert first["seen"]() is False
    assert second["seen"]() is False


def test_host_names_not_visible(capability):
    ExecutionSandbox().run("logger.info('hi')\n", capability)

    assert isinstance(failure_of(capability).__cause__, NameError)


@pytest.mark.parametrize("name", ["open", "eval", "exec", "compile", "input", "globals"])
def test_blocked_builtins(capability, name):
    ExecutionSandbox().run(f"{name}\n", capability)

    assert isinstance(failure_of(capability).__cause__, NameError)


def test_allowed_import(capability):
    exports = ExecutionSandbox().run("import math\nexports['pi'] = lambda: math.pi\n", capability)

    capability.fail.assert_not_called()
    assert exports["pi"]() > 3.14


def test_submodule_of_allowed_import(capability):
    ExecutionSandbox().run("from collections.abc import Mapping\n", capability)

    capability.fail.assert_not_called()


def test_disallowed_import(capability):
    ExecutionSandbox().run("import os\n", capability)

    error = failure_of(capability)
    assert isinstance(error, ActivityRuntimeError)
    assert isinstance(error.__cause__, ImportError)
    assert "os" in str(error.__cause__)


def test_custom_allow_list(capability):
    sandbox = ExecutionSandbox(allowed_imports=["json"])

    sandbox.run("import json\n", capability)
    capability.fail.assert_not_called()

    sandbox.run("import math\n", capability)
    assert isinstance(failure_of(capability).__cause__, ImportError)


def test_classes_can_be_defined(capability):
    code = (
        "class Counter:\n"
        "    def __init__(self):\n"
        "        self.n = 0\n"
        "exports['make'] = Counter\n"
    )
    exports = ExecutionSandbox().run(code, capability)

    capability.fail.assert_not_called()
    assert exports["make"]().n == 0


def test_empty_text_exports_nothing(capability):
    exports = ExecutionSandbox().run("", capability)

    assert dict(exports) == {}
    capability.fail.assert_not_called()


def test_system_exit_reported_not_raised(capability):
    exports = ExecutionSandbox().run("exports['a'] = len\nraise SystemExit(3)\n", capability)

    assert set(exports) == {"a"}
    error = failure_of(capability)
    assert isinstance(error, ActivityRuntimeError)
    assert isinstance(error.__cause__, SystemExit)
