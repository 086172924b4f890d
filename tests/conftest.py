import os
import sys

import pytest

# the Ansible modules sit at the top of the repo, not in a package
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from orapac import config, dbug  # noqa: E402
from orapac.utils import CmdResult  # noqa: E402


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """No GV_* from the caller's shell, no ~/.orapac.yml, debugging off."""
    for name in config.defaults:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("ORAPAC_CONSTANTS", raising=False)
    monkeypatch.setattr(config, "_constants", {})
    monkeypatch.setattr(config, "debugme", False)
    monkeypatch.setattr(config, "debug_log", config.debug_log)
    dbug.reset_msg()
    yield
    dbug.reset_msg()


class FakeRunner(object):
    """
    Stands in for run_local. responses maps a command ( tuple of args ) to a
    CmdResult or a list of them, handed out in order, the last one repeating.
    """

    def __init__(self, responses=None, default=None):
        self.responses = dict((tuple(k), v) for k, v in (responses or {}).items())
        self.default = default or CmdResult(0, "", "")
        self.calls = []

    def __call__(self, cmd, input_str=None, env=None, timeout=None):
        self.calls.append(list(cmd))
        result = self.responses.get(tuple(cmd), self.default)
        if isinstance(result, list):
            if len(result) > 1:
                return result.pop(0)
            return result[0]
        return result


@pytest.fixture
def fake_runner():
    return FakeRunner


class ExitJson(Exception):
    pass


class FailJson(Exception):
    pass


def make_fake_module(params, check_mode=False):
    """A stand-in for AnsibleModule: exit_json / fail_json raise with their kwargs."""

    class FakeModule(object):
        def __init__(self, argument_spec=None, supports_check_mode=False):
            self.argument_spec = argument_spec
            self.params = dict((k, None) for k in argument_spec)
            for k, options in argument_spec.items():
                if "default" in options:
                    self.params[k] = options["default"]
            self.params.update(params)
            self.check_mode = check_mode

        def exit_json(self, **kwargs):
            raise ExitJson(kwargs)

        def fail_json(self, **kwargs):
            raise FailJson(kwargs)

    return FakeModule


@pytest.fixture
def fake_module():
    return make_fake_module
