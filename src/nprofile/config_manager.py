"""Configuration management module.

This module loads profile definitions from a TOML file and validates their
structure before anything is resolved or executed.

File format:

    [[profiles]]
    name = "wifi"
    aliases = ["w"]
    dependencies = ["vpn", { name = "dns", env = "linux-resolved" }]

    [profiles.envs.linux]
    enable = "nmcli radio {device} on"
    disable = "nmcli radio {device} off"

    [profiles.envs.linux.parameters]
    device = "wifi"

Security:
- Profile files contain shell commands; a group/other writable file is
  reported with a warning
"""

import logging
import platform
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for Python versions that ship tomllib
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

from nprofile.exceptions import ConfigError
from nprofile.models import COMMAND_FIELDS, Dependency, Environment, Profile, ProfileConfig

logger = logging.getLogger(__name__)

ENVIRONMENT_KEYS = frozenset({"shell", "parameters", *COMMAND_FIELDS})
REQUIRED_COMMANDS = ("enable", "disable")


def default_environment() -> str:
    """Default environment name for the running platform.

    Returns:
        "linux", "macos" or "windows"

    Raises:
        ConfigError: On any other platform
    """
    system = platform.system()
    if system == "Linux":
        return "linux"
    if system == "Darwin":
        return "macos"
    if system == "Windows":
        return "windows"
    raise ConfigError(
        f"Cannot determine default environment for system '{system}', "
        "pass --environment-name explicitly"
    )


class ConfigManager:
    """Load and validate nprofile configuration files.

    Configuration is read from ~/.nprofile/profiles.toml unless a path is
    given explicitly.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".nprofile"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "profiles.toml"

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Path to config file

        Raises:
            ConfigError: If a custom path does not point to a file
        """
        if custom_path:
            path = Path(custom_path).expanduser().resolve()
            if not path.is_file():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> ProfileConfig:
        """Load profile configuration from file.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Validated ProfileConfig

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            raise ConfigError(
                f"Config file not found: {config_path}\n"
                "Create it or pass --config-path / set CONFIG_PATH."
            )

        cls._check_permissions(config_path)

        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)  # type: ignore[attr-defined]
        except tomli.TOMLDecodeError as e:  # type: ignore[attr-defined]
            raise ConfigError(f"Failed to parse config {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read config {config_path}: {e}") from e

        config = cls.parse_config(data)
        logger.debug(f"Loaded {len(config)} profiles from {config_path}")
        return config

    @classmethod
    def loads(cls, text: str) -> ProfileConfig:
        """Parse and validate configuration from a TOML string."""
        try:
            data = tomli.loads(text)  # type: ignore[attr-defined]
        except tomli.TOMLDecodeError as e:  # type: ignore[attr-defined]
            raise ConfigError(f"Failed to parse config: {e}") from e
        return cls.parse_config(data)

    @classmethod
    def _check_permissions(cls, path: Path) -> None:
        try:
            mode = path.stat().st_mode & 0o777
        except OSError as e:
            logger.warning(f"Could not check file permissions for {path}: {e}")
            return
        if mode & 0o022:
            logger.warning(
                f"Config file {path} is writable by group/others ({oct(mode)}). "
                "Anyone who can edit it can run commands as you."
            )

    @classmethod
    def parse_config(cls, data: dict[str, Any]) -> ProfileConfig:
        """Validate raw TOML data and build a ProfileConfig.

        All problems are collected and reported together.

        Raises:
            ConfigError: If the configuration is structurally invalid
        """
        errors: list[str] = []
        raw_profiles = data.get("profiles")
        if not isinstance(raw_profiles, list):
            raise ConfigError("Invalid configuration:\n  - 'profiles' must be an array of tables")

        profiles: list[Profile] = []
        owners: dict[str, str] = {}
        for position, raw in enumerate(raw_profiles):
            profile = cls._parse_profile(position, raw, errors)
            if profile is None:
                continue
            for key in (profile.name, *profile.aliases):
                if key in owners:
                    errors.append(
                        f"Duplicate profile name or alias '{key}' "
                        f"(profiles '{owners[key]}' and '{profile.name}')"
                    )
                else:
                    owners[key] = profile.name
            profiles.append(profile)

        if errors:
            raise ConfigError("Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors))

        return ProfileConfig(profiles)

    @classmethod
    def _parse_profile(cls, position: int, raw: Any, errors: list[str]) -> Profile | None:
        if not isinstance(raw, dict):
            errors.append(f"profiles[{position}] must be a table")
            return None

        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"profiles[{position}] is missing a 'name'")
            return None

        count = len(errors)
        aliases = raw.get("aliases", [])
        if not isinstance(aliases, list) or not all(
            isinstance(a, str) and a.strip() for a in aliases
        ):
            errors.append(f"Profile '{name}': 'aliases' must be a list of non-empty strings")
            aliases = []
        if name in aliases:
            errors.append(f"Profile '{name}': alias repeats the profile name")

        dependencies = cls._parse_dependencies(name, raw.get("dependencies", []), errors)

        raw_envs = raw.get("envs", {})
        environments: dict[str, Environment] = {}
        if not isinstance(raw_envs, dict):
            errors.append(f"Profile '{name}': 'envs' must be a table")
        else:
            for env_name, raw_env in raw_envs.items():
                environment = cls._parse_environment(name, env_name, raw_env, errors)
                if environment is not None:
                    environments[env_name] = environment

        unknown = sorted(set(raw) - {"name", "aliases", "dependencies", "envs"})
        if unknown:
            errors.append(f"Profile '{name}': unknown keys {', '.join(unknown)}")

        if not environments and not dependencies and len(errors) == count:
            errors.append(f"Profile '{name}' must define at least one environment or dependency")

        if len(errors) > count:
            return None
        return Profile(
            name=name,
            aliases=tuple(aliases),
            dependencies=tuple(dependencies),
            environments=environments,
        )

    @staticmethod
    def _parse_dependencies(profile_name: str, raw: Any, errors: list[str]) -> list[Dependency]:
        if not isinstance(raw, list):
            errors.append(f"Profile '{profile_name}': 'dependencies' must be a list")
            return []

        dependencies = []
        for item in raw:
            if isinstance(item, str) and item.strip():
                dependencies.append(Dependency(name=item))
            elif isinstance(item, dict) and isinstance(item.get("name"), str) and item["name"]:
                env = item.get("env")
                if env is not None and not isinstance(env, str):
                    errors.append(
                        f"Profile '{profile_name}': dependency '{item['name']}' "
                        "env must be a string"
                    )
                    continue
                extra = sorted(set(item) - {"name", "env"})
                if extra:
                    errors.append(
                        f"Profile '{profile_name}': dependency '{item['name']}' has unknown keys "
                        f"{', '.join(extra)}"
                    )
                    continue
                dependencies.append(Dependency(name=item["name"], environment=env))
            else:
                errors.append(
                    f"Profile '{profile_name}': dependencies must be names or "
                    "{ name = ..., env = ... } tables"
                )
        return dependencies

    @staticmethod
    def _parse_environment(
        profile_name: str, env_name: str, raw: Any, errors: list[str]
    ) -> Environment | None:
        where = f"Profile '{profile_name}' environment '{env_name}'"
        if not isinstance(raw, dict):
            errors.append(f"{where} must be a table")
            return None

        count = len(errors)
        unknown = sorted(set(raw) - ENVIRONMENT_KEYS)
        if unknown:
            errors.append(f"{where}: unknown keys {', '.join(unknown)}")

        for command in REQUIRED_COMMANDS:
            if command not in raw:
                errors.append(f"{where}: missing required command '{command}'")
        for key in ("shell", *COMMAND_FIELDS):
            if key in raw and not isinstance(raw[key], str):
                errors.append(f"{where}: '{key}' must be a string")

        parameters: dict[str, str] = {}
        raw_parameters = raw.get("parameters", {})
        if not isinstance(raw_parameters, dict):
            errors.append(f"{where}: 'parameters' must be a table")
        else:
            for key, value in raw_parameters.items():
                if isinstance(value, bool):
                    parameters[key] = "true" if value else "false"
                elif isinstance(value, str | int | float):
                    parameters[key] = str(value)
                else:
                    errors.append(f"{where}: parameter '{key}' must be a string or number")

        if len(errors) > count:
            return None
        return Environment(
            name=env_name,
            shell=raw.get("shell"),
            parameters=parameters,
            can_enable=raw.get("can_enable"),
            is_enabled=raw.get("is_enabled"),
            enable=raw["enable"],
            disable=raw["disable"],
        )


__all__ = ["ConfigError", "ConfigManager", "default_environment"]
