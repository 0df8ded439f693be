"""
Shared test fixtures and configuration for nprofile tests.

This module provides common fixtures used across all test types:
- A recording command runner that never spawns processes
- Sample profile configurations (wifi / vpn / work)
- Temporary config files for CLI tests
"""

from pathlib import Path

import pytest

from nprofile.config_manager import ConfigManager
from nprofile.models import Dependency, Environment, Profile, ProfileConfig
from nprofile.process import CommandResult

# ============================================================================
# COMMAND RUNNER FIXTURES
# ============================================================================


class CommandCallCapture:
    """Record commands and return configured results.

    Used in place of process.run_command. Responses are matched by
    substring, first configured pattern wins; unmatched commands exit 0.
    """

    def __init__(self):
        self.calls: list[tuple[str, str | None]] = []
        self._responses: list[tuple[str, CommandResult]] = []

    def __call__(self, command: str, shell: str | None = None) -> CommandResult:
        self.calls.append((command, shell))
        for pattern, response in self._responses:
            if pattern in command:
                return response
        return CommandResult(returncode=0, stdout="", stderr="")

    def configure_response(
        self,
        command_pattern: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
        spawn_error: bool = False,
    ) -> None:
        result = CommandResult(
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
            spawn_error=spawn_error,
        )
        self._responses.append((command_pattern, result))

    @property
    def commands(self) -> list[str]:
        return [command for command, _shell in self.calls]

    def assert_not_called_with(self, command: str) -> None:
        matching = [c for c in self.commands if command in c]
        if matching:
            raise AssertionError(f"Command '{command}' unexpectedly run: {matching}")


@pytest.fixture
def runner():
    """Recording command runner; every command succeeds unless configured."""
    return CommandCallCapture()


# ============================================================================
# PROFILE FIXTURES
# ============================================================================


def make_environment(name: str = "linux", **kwargs) -> Environment:
    """Environment with echo commands unless overridden."""
    kwargs.setdefault("enable", "echo on")
    kwargs.setdefault("disable", "echo off")
    return Environment(name=name, **kwargs)


def make_profile(name: str, dependencies=(), environments=None, aliases=()) -> Profile:
    """Profile with a single `linux` environment unless told otherwise."""
    deps = tuple(d if isinstance(d, Dependency) else Dependency(d) for d in dependencies)
    if environments is None:
        environments = {
            "linux": make_environment(enable=f"enable-{name}", disable=f"disable-{name}")
        }
    return Profile(name=name, aliases=tuple(aliases), dependencies=deps, environments=environments)


@pytest.fixture
def work_config() -> ProfileConfig:
    """vpn and wifi leaf profiles plus a `work` composition of both."""
    return ProfileConfig(
        [
            make_profile("vpn"),
            make_profile("wifi", aliases=["w"]),
            make_profile("work", dependencies=["vpn", "wifi"], environments={}),
        ]
    )


SAMPLE_TOML = """
[[profiles]]
name = "wifi"
aliases = ["w"]

[profiles.envs.linux]
is_enabled = "check-wifi {device}"
enable = "nmcli radio {device} on"
disable = "nmcli radio {device} off"

[profiles.envs.linux.parameters]
device = "wifi"
ssid = "Office"

[[profiles]]
name = "vpn"

[profiles.envs.linux]
can_enable = "test -e /etc/wireguard/{interface}.conf"
enable = "wg-quick up {interface}"
disable = "wg-quick down {interface}"

[profiles.envs.linux.parameters]
interface = "wg0"

[[profiles]]
name = "work"
dependencies = ["vpn", "w"]
"""


@pytest.fixture
def sample_toml() -> str:
    return SAMPLE_TOML


@pytest.fixture
def sample_config() -> ProfileConfig:
    return ConfigManager.loads(SAMPLE_TOML)


@pytest.fixture
def config_file(tmp_path) -> Path:
    """SAMPLE_TOML written to a private temporary file."""
    path = tmp_path / "profiles.toml"
    path.write_text(SAMPLE_TOML)
    path.chmod(0o600)
    return path


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep CONFIG_PATH / ENVIRONMENT_NAME from the developer's shell out of tests."""
    monkeypatch.delenv("CONFIG_PATH", raising=False)
    monkeypatch.delenv("ENVIRONMENT_NAME", raising=False)


@pytest.fixture(name="make_profile")
def make_profile_fixture():
    """Factory fixture for building profiles in tests."""
    return make_profile


@pytest.fixture(name="make_environment")
def make_environment_fixture():
    """Factory fixture for building environments in tests."""
    return make_environment
