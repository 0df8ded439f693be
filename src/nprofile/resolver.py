"""Dependency resolution for profiles.

Turns a target profile and its transitive dependencies into an ordered,
duplicate-free execution plan.

Philosophy:
- Explicit stack instead of recursion, so deep chains never hit the
  interpreter's recursion limit
- Deterministic: siblings are visited in declaration order
- Fail fast on unknown references and cycles

Public API:
    DependencyResolver: Plan builder for a loaded ProfileConfig
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from nprofile.exceptions import DependencyCycleError, NprofileError
from nprofile.models import Action, Dependency, ExecutionPlan, PlanEntry, Profile, ProfileConfig

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    """Traversal state for one profile on the active path."""

    profile: Profile
    environment_name: str
    pending: Iterator[Dependency] = field(init=False)

    def __post_init__(self):
        self.pending = iter(self.profile.dependencies)


class DependencyResolver:
    """Compute execution plans from a profile configuration.

    Example:
        >>> resolver = DependencyResolver(config)
        >>> plan = resolver.resolve("work", Action.ENABLE, "linux")
        >>> plan.profile_names
        ['vpn', 'wifi', 'work']
    """

    def __init__(self, config: ProfileConfig):
        self.config = config

    def resolve(self, target: str, action: Action, environment_name: str) -> ExecutionPlan:
        """Build the execution plan for an action on a target profile.

        Args:
            target: Profile name or alias
            action: Action.ENABLE or Action.DISABLE
            environment_name: Environment requested for the run

        Returns:
            ExecutionPlan with dependencies before dependents for enable,
            and the reverse for disable

        Raises:
            UnknownProfileError: If the target or a dependency does not resolve
            DependencyCycleError: If a cycle is reachable from the target
            ValueError: If action is not ENABLE or DISABLE
        """
        if action not in (Action.ENABLE, Action.DISABLE):
            raise ValueError(f"Cannot resolve a plan for action: {action}")

        root = self.config.lookup(target)
        entries = self._walk(root, environment_name)
        if action is Action.DISABLE:
            entries.reverse()

        plan = ExecutionPlan(target=root.name, action=action, entries=tuple(entries))
        logger.debug(
            f"Resolved {action.value} plan for {root.name}: "
            + ", ".join(f"{e.profile_name}@{e.environment_name}" for e in plan.entries)
        )
        return plan

    def _walk(self, root: Profile, environment_name: str) -> list[PlanEntry]:
        """Post-order depth-first walk from root."""
        order: list[PlanEntry] = []
        done: set[tuple[str, str]] = set()
        path: list[str] = [root.name]
        on_path: set[str] = {root.name}
        stack: list[_Frame] = [_Frame(root, environment_name)]

        while stack:
            frame = stack[-1]
            dependency = next(frame.pending, None)

            if dependency is None:
                stack.pop()
                path.pop()
                on_path.discard(frame.profile.name)
                entry = PlanEntry(frame.profile, frame.environment_name)
                if entry.key not in done:
                    done.add(entry.key)
                    order.append(entry)
                continue

            child = self.config.lookup(dependency.name, referenced_by=frame.profile.name)
            if child.name in on_path:
                cycle_start = path.index(child.name)
                raise DependencyCycleError(path[cycle_start:] + [child.name])

            child_environment = dependency.environment or environment_name
            if (child.name, child_environment) in done:
                continue

            path.append(child.name)
            on_path.add(child.name)
            stack.append(_Frame(child, child_environment))

        return order

    def resolve_all(self, environment_name: str) -> dict[str, NprofileError]:
        """Resolve every profile and collect graph errors.

        Returns:
            Profile name -> first error found for it, in configuration order
        """
        errors: dict[str, NprofileError] = {}
        for profile in self.config:
            try:
                self.resolve(profile.name, Action.ENABLE, environment_name)
            except NprofileError as e:
                errors[profile.name] = e
        return errors


__all__ = ["DependencyResolver"]
