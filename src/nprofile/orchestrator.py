"""Run an action on a profile and everything it depends on.

This module implements the top-level flow: resolve a plan, prepare every
step, then execute the steps one at a time in plan order.

Philosophy:
- Structural errors abort before any command runs
- Strictly sequential: later steps depend on network state set up earlier
- Stop at the first failed step; nothing is rolled back

Public API:
    Orchestrator: Main controller class
"""

import logging
from collections.abc import Mapping

from nprofile.exceptions import UnknownParameterError
from nprofile.executor import CommandRunner, PreparedStep, ProfileExecutor
from nprofile.models import (
    Action,
    ExecutionPlan,
    OutcomeStatus,
    Profile,
    ProfileConfig,
    RunResult,
)
from nprofile.process import run_command
from nprofile.resolver import DependencyResolver

logger = logging.getLogger(__name__)

_PROGRESS = {
    Action.ENABLE: ("Enabling", "Enabled"),
    Action.DISABLE: ("Disabling", "Disabled"),
}


class Orchestrator:
    """Coordinate resolver and executor for whole runs.

    Example:
        >>> orchestrator = Orchestrator(config)
        >>> result = orchestrator.run("work", Action.ENABLE, "linux")
        >>> result.success
        True
    """

    def __init__(
        self,
        config: ProfileConfig,
        runner: CommandRunner | None = None,
        resolver: DependencyResolver | None = None,
        executor: ProfileExecutor | None = None,
    ):
        """Initialize orchestrator.

        Args:
            config: Loaded profile configuration
            runner: Command runner (default: process.run_command)
            resolver: Optional resolver (for testing)
            executor: Optional executor (for testing)
        """
        self.config = config
        self.resolver = resolver or DependencyResolver(config)
        self.executor = executor or ProfileExecutor(runner or run_command)

    def plan(
        self,
        target: str,
        action: Action,
        environment_name: str,
        overrides: Mapping[str, str] | None = None,
    ) -> list[PreparedStep]:
        """Resolve and prepare every step of a run without executing anything.

        RESET yields the disable steps followed by the enable steps.

        Raises:
            NprofileError: Any structural error (unknown profile, cycle,
                unknown environment or parameter, malformed template)
        """
        overrides = dict(overrides or {})
        if action is Action.RESET:
            phases = [Action.DISABLE, Action.ENABLE]
        else:
            phases = [action]

        steps: list[PreparedStep] = []
        for phase in phases:
            plan = self.resolver.resolve(target, phase, environment_name)
            phase_steps = [
                self.executor.prepare(
                    entry.profile,
                    entry.environment_name,
                    phase,
                    self._scope_overrides(entry.profile, entry.environment_name, overrides),
                )
                for entry in plan
            ]
            self._check_overrides(plan, phase_steps, overrides)
            steps.extend(phase_steps)
        return steps

    def run(
        self,
        target: str,
        action: Action,
        environment_name: str,
        overrides: Mapping[str, str] | None = None,
    ) -> RunResult:
        """Run an action on a profile and its dependency closure.

        Args:
            target: Profile name or alias
            action: ENABLE, DISABLE or RESET
            environment_name: Environment requested for the run
            overrides: Parameter name -> value overriding environment defaults

        Returns:
            RunResult with the outcome of every attempted step

        Raises:
            NprofileError: Structural errors, raised before any command runs
        """
        steps = self.plan(target, action, environment_name, overrides)
        canonical = self.config.lookup(target).name
        result = RunResult(target=canonical, action=action, environment_name=environment_name)

        for step in steps:
            doing, done = _PROGRESS[step.action]
            if not step.is_composition:
                logger.info(
                    f"{doing} profile {step.profile_name} using environment {step.environment_name}"
                )
            outcome = self.executor.run(step)
            result.outcomes.append(outcome)

            if not outcome.succeeded:
                logger.error(outcome.describe())
                remaining = len(steps) - len(result.outcomes)
                if remaining:
                    logger.debug(f"Skipping {remaining} remaining step(s)")
                break

            if step.is_composition:
                continue
            if outcome.status is OutcomeStatus.SUCCESS:
                logger.info(f"{done} profile {step.profile_name}")
            else:
                logger.info(outcome.describe())

        return result

    @staticmethod
    def _check_overrides(
        plan: ExecutionPlan, steps: list[PreparedStep], overrides: Mapping[str, str]
    ) -> None:
        """Every override must be declared by at least one step's environment."""
        declared: set[str] = set()
        for step in steps:
            declared.update(step.parameters)
        for name in overrides:
            if name not in declared:
                raise UnknownParameterError(name, plan.target)

    @staticmethod
    def _scope_overrides(
        profile: Profile, environment_name: str, overrides: Mapping[str, str]
    ) -> dict[str, str]:
        """Keep only the overrides this profile's environment declares."""
        environment = profile.environments.get(environment_name)
        if environment is None:
            return {}
        return {k: v for k, v in overrides.items() if k in environment.parameters}


__all__ = ["Orchestrator"]
