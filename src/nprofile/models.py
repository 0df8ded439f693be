"""Data models for profiles, plans and run results.

Philosophy:
- Immutable dataclasses for configuration values
- Simple validation at construction time
- Plans and results are created fresh for every run
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from nprofile.exceptions import UnknownEnvironmentError, UnknownProfileError

COMMAND_FIELDS = ("can_enable", "is_enabled", "enable", "disable")


class Action(str, Enum):
    """Profile actions.

    RESET is composite: disable then re-enable.
    """

    ENABLE = "enable"
    DISABLE = "disable"
    RESET = "reset"

    def __str__(self) -> str:
        return self.value


class OutcomeStatus(str, Enum):
    """Terminal state of one executed plan step."""

    SUCCESS = "success"
    ALREADY_SATISFIED = "already_satisfied"
    CANNOT_ENABLE = "cannot_enable"
    COMMAND_FAILURE = "command_failure"

    @property
    def succeeded(self) -> bool:
        return self in (OutcomeStatus.SUCCESS, OutcomeStatus.ALREADY_SATISFIED)


@dataclass(frozen=True)
class Environment:
    """Environment-specific commands to enable and disable a profile.

    Profiles such as Wi-Fi or LAN networks are switched with different
    commands on Windows, Linux and macOS. Each environment carries its own
    command templates and parameter defaults.
    """

    name: str
    enable: str
    disable: str
    can_enable: str | None = None
    is_enabled: str | None = None
    shell: str | None = None
    parameters: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Environment name cannot be empty")
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def command(self, field_name: str) -> str | None:
        """Return the raw template for a command field, or None if undefined."""
        if field_name not in COMMAND_FIELDS:
            raise ValueError(f"Unknown command field: {field_name}")
        return getattr(self, field_name)


@dataclass(frozen=True)
class Dependency:
    """Reference from one profile to another.

    ``environment`` pins the dependency to a specific environment; when None
    the dependency runs in the environment requested for the whole run.
    """

    name: str
    environment: str | None = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Dependency name cannot be empty")


@dataclass(frozen=True)
class Profile:
    """Named network configuration with platform-specific commands.

    A profile with dependencies but no environments is a composition
    profile: it has no commands of its own and only ties its dependencies
    together.
    """

    name: str
    aliases: tuple[str, ...] = ()
    dependencies: tuple[Dependency, ...] = ()
    environments: Mapping[str, Environment] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Profile name cannot be empty")
        if not self.environments and not self.dependencies:
            raise ValueError(
                f"Profile '{self.name}' must define at least one environment or dependency"
            )
        object.__setattr__(self, "aliases", tuple(self.aliases))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        object.__setattr__(self, "environments", MappingProxyType(dict(self.environments)))

    @property
    def is_composition(self) -> bool:
        return not self.environments

    def get_environment(self, environment_name: str) -> Environment:
        """Get an environment by name.

        Raises:
            UnknownEnvironmentError: If the environment is not defined
        """
        environment = self.environments.get(environment_name)
        if environment is None:
            raise UnknownEnvironmentError(
                self.name, environment_name, tuple(sorted(self.environments))
            )
        return environment


class ProfileConfig:
    """Loaded set of profiles with a name/alias lookup index.

    The index is built once here and shared by reference with the resolver
    and executor. Name and alias uniqueness is checked by the loader; this
    class still refuses to build an ambiguous index.
    """

    def __init__(self, profiles: list[Profile] | tuple[Profile, ...]):
        self._profiles: dict[str, Profile] = {}
        self._index: dict[str, str] = {}
        for profile in profiles:
            for key in (profile.name, *profile.aliases):
                if key in self._index:
                    raise ValueError(f"Duplicate profile name or alias: {key}")
                self._index[key] = profile.name
            self._profiles[profile.name] = profile

    def __len__(self) -> int:
        return len(self._profiles)

    def __iter__(self):
        return iter(self._profiles.values())

    def __contains__(self, name: object) -> bool:
        return name in self._index

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._profiles)

    def get(self, name: str) -> Profile | None:
        """Look up a profile by name or alias."""
        canonical = self._index.get(name)
        return self._profiles[canonical] if canonical is not None else None

    def lookup(self, name: str, referenced_by: str | None = None) -> Profile:
        """Look up a profile by name or alias.

        Raises:
            UnknownProfileError: If nothing matches
        """
        profile = self.get(name)
        if profile is None:
            raise UnknownProfileError(name, referenced_by=referenced_by, known=self.names)
        return profile


@dataclass(frozen=True)
class PlanEntry:
    """One (profile, environment) slot in an execution plan."""

    profile: Profile
    environment_name: str

    @property
    def profile_name(self) -> str:
        return self.profile.name

    @property
    def key(self) -> tuple[str, str]:
        return (self.profile.name, self.environment_name)

    @property
    def is_composition(self) -> bool:
        return self.profile.is_composition


@dataclass(frozen=True)
class ExecutionPlan:
    """Ordered, duplicate-free steps for one action on one target."""

    target: str
    action: Action
    entries: tuple[PlanEntry, ...]

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def profile_names(self) -> list[str]:
        return [entry.profile_name for entry in self.entries]

    @property
    def actionable(self) -> tuple[PlanEntry, ...]:
        """Entries that run commands (composition slots excluded)."""
        return tuple(entry for entry in self.entries if not entry.is_composition)


@dataclass
class Outcome:
    """Result of running one plan step."""

    profile_name: str
    environment_name: str
    action: Action
    status: OutcomeStatus
    exit_code: int | None = None
    output: str = ""
    commands_run: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status.succeeded

    def describe(self) -> str:
        """Human-readable one-line summary."""
        if self.status is OutcomeStatus.SUCCESS:
            return f"{self.action.value}d profile {self.profile_name}"
        if self.status is OutcomeStatus.ALREADY_SATISFIED:
            state = "enabled" if self.action is Action.ENABLE else "disabled"
            return f"profile {self.profile_name} already {state}"
        if self.status is OutcomeStatus.CANNOT_ENABLE:
            reason = f": {self.output}" if self.output else ""
            return f"profile {self.profile_name} requirements not met{reason}"
        reason = f": {self.output}" if self.output else ""
        return (
            f"failed to {self.action.value} profile {self.profile_name} "
            f"(exit code {self.exit_code}){reason}"
        )


@dataclass
class RunResult:
    """Aggregated outcome of an orchestrated run."""

    target: str
    action: Action
    environment_name: str
    outcomes: list[Outcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(outcome.succeeded for outcome in self.outcomes)

    @property
    def failed(self) -> Outcome | None:
        """First failed outcome, if any."""
        for outcome in self.outcomes:
            if not outcome.succeeded:
                return outcome
        return None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


__all__ = [
    "COMMAND_FIELDS",
    "Action",
    "Dependency",
    "Environment",
    "ExecutionPlan",
    "Outcome",
    "OutcomeStatus",
    "PlanEntry",
    "Profile",
    "ProfileConfig",
    "RunResult",
]
