"""Pytest configuration for tmuxdeck tests."""

import os
from pathlib import Path

import pytest

# Must be set before tmuxdeck.config is first imported
os.environ["TMUXDECK_CONFIG_PATH"] = str(Path(__file__).parent / "fixtures" / "tmuxdeck.yml")
os.environ.pop("TMUXDECK_LOG_LEVEL", None)


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))


class FakeConnectionManager:
    """Scripted stand-in for ConnectionManager.

    Responses are matched by substring against the command; a rule's results
    are consumed in order and its last result repeats.
    """

    def __init__(self):
        from tmuxdeck.core.models import CommandResult

        self._result_type = CommandResult
        self.calls: list[tuple[str, str]] = []
        self._rules: list[tuple[str, list]] = []

    def when(self, fragment: str, *results):
        self._rules.append((fragment, list(results)))
        return self

    def ok(self, fragment: str, stdout: str = ""):
        return self.when(fragment, self._result_type(stdout=stdout, stderr="", exit_code=0))

    def fail(self, fragment: str, stderr: str = "", exit_code: int = 1):
        return self.when(fragment, self._result_type(stdout="", stderr=stderr, exit_code=exit_code))

    @property
    def commands(self) -> list[str]:
        return [command for _, command in self.calls]

    async def execute(self, connection_id: str, command: str):
        self.calls.append((connection_id, command))
        for fragment, results in self._rules:
            if fragment in command:
                return results.pop(0) if len(results) > 1 else results[0]
        return self._result_type(stdout="", stderr="", exit_code=0)

    def dispose(self):
        pass


@pytest.fixture
def fake_connections():
    return FakeConnectionManager()


@pytest.fixture
def tmux_service(fake_connections, tmp_path):
    from tmuxdeck.core.tmux_service import TmuxService

    return TmuxService(fake_connections, config_file=str(tmp_path / ".tmux.conf"))
