"""Exception hierarchy for nprofile.

Structural errors (unknown names, cycles, bad templates) are raised as
exceptions and abort a run before any command executes. Runtime outcomes of
individual steps are reported through OutcomeStatus instead.
"""


class NprofileError(Exception):
    """Base exception for nprofile errors."""

    exit_code = 1


class ConfigError(NprofileError):
    """Raised when the profile configuration cannot be loaded or is invalid."""

    pass


class UnknownProfileError(NprofileError):
    """A profile name or alias does not resolve."""

    def __init__(
        self,
        name: str,
        referenced_by: str | None = None,
        known: tuple[str, ...] | list[str] = (),
    ):
        self.name = name
        self.referenced_by = referenced_by
        self.known = tuple(known)
        if referenced_by:
            message = f"Profile '{referenced_by}' depends on unknown profile '{name}'"
        else:
            message = f"Unknown profile '{name}'"
        if self.known:
            message += f", possible values are: {', '.join(self.known)}"
        super().__init__(message)


class DependencyCycleError(NprofileError):
    """Profile dependencies form a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(f"Circular profile dependency detected: {' -> '.join(self.cycle)}")


class UnknownEnvironmentError(NprofileError):
    """Requested environment is not defined for a profile."""

    def __init__(self, profile: str, environment: str, available: tuple[str, ...] = ()):
        self.profile = profile
        self.environment = environment
        self.available = tuple(available)
        message = f"Environment '{environment}' not defined for profile '{profile}'"
        if self.available:
            message += f" (defined: {', '.join(self.available)})"
        super().__init__(message)


class UnknownParameterError(NprofileError):
    """A template or override refers to an undeclared parameter."""

    def __init__(self, name: str, profile: str | None = None, environment: str | None = None):
        self.name = name
        self.profile = profile
        self.environment = environment
        if profile and environment:
            message = (
                f"Unknown parameter '{name}' for profile '{profile}' "
                f"in environment '{environment}'"
            )
        elif profile:
            message = f"Unknown parameter '{name}' for profile '{profile}'"
        else:
            message = f"Unknown parameter '{name}'"
        super().__init__(message)


class MalformedTemplateError(NprofileError):
    """A command template has unbalanced or nested braces."""

    def __init__(self, message: str, template: str = "", position: int = -1):
        self.template = template
        self.position = position
        if position >= 0:
            message = f"{message} at offset {position}"
        super().__init__(message)


__all__ = [
    "ConfigError",
    "DependencyCycleError",
    "MalformedTemplateError",
    "NprofileError",
    "UnknownEnvironmentError",
    "UnknownParameterError",
    "UnknownProfileError",
]
