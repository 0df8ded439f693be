"""Per-profile enable/disable state machine.

Each step goes through up to three stages:

1. can_enable (enable only): requirements check; failure stops the step
2. is_enabled: idempotency check; a step already in the requested state stops
3. enable/disable: the action itself

Undefined checks are skipped. Without ``is_enabled`` the profile is assumed
not to be in the requested state, so the action always runs. A check that
times out or whose shell cannot be started is a command failure, never a
verdict.

Public API:
    ProfileExecutor: Runs steps through an injected command runner
    PreparedStep: A step with all commands rendered
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from nprofile.exceptions import MalformedTemplateError, UnknownParameterError
from nprofile.models import Action, Outcome, OutcomeStatus, Profile
from nprofile.process import CommandResult
from nprofile.template import render

logger = logging.getLogger(__name__)

CommandRunner = Callable[[str, str | None], CommandResult]

_STAGES = {
    Action.ENABLE: ("can_enable", "is_enabled", "enable"),
    Action.DISABLE: ("is_enabled", "disable"),
}


@dataclass(frozen=True)
class PreparedStep:
    """A plan step with its parameters bound and commands rendered."""

    profile: Profile
    environment_name: str
    action: Action
    shell: str | None = None
    parameters: Mapping[str, str] = field(default_factory=dict, hash=False)
    commands: Mapping[str, str] = field(default_factory=dict, hash=False)

    @property
    def profile_name(self) -> str:
        return self.profile.name

    @property
    def is_composition(self) -> bool:
        return self.profile.is_composition


class ProfileExecutor:
    """Run the enable/disable state machine for single profiles.

    The executor holds no state between steps; ``runner`` is the only
    collaborator and is called as ``runner(command, shell)``.
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def prepare(
        self,
        profile: Profile,
        environment_name: str,
        action: Action,
        overrides: Mapping[str, str] | None = None,
    ) -> PreparedStep:
        """Bind parameters and render every command a step may run.

        Nothing is executed here, so all structural errors surface before
        any side effect.

        Raises:
            UnknownEnvironmentError: If the profile lacks the environment
            UnknownParameterError: If an override or placeholder is undeclared
            MalformedTemplateError: If a command template is malformed
            ValueError: If action is not ENABLE or DISABLE
        """
        if action not in _STAGES:
            raise ValueError(f"Executor cannot run action: {action}")

        overrides = overrides or {}
        if profile.is_composition:
            if overrides:
                raise UnknownParameterError(next(iter(overrides)), profile.name)
            return PreparedStep(profile, environment_name, action)

        environment = profile.get_environment(environment_name)
        for name in overrides:
            if name not in environment.parameters:
                raise UnknownParameterError(name, profile.name, environment.name)
        parameters = {**environment.parameters, **overrides}

        commands: dict[str, str] = {}
        for stage in _STAGES[action]:
            template = environment.command(stage)
            if template is None:
                continue
            try:
                commands[stage] = render(template, parameters)
            except UnknownParameterError as e:
                raise UnknownParameterError(e.name, profile.name, environment.name) from e
            except MalformedTemplateError as e:
                error = MalformedTemplateError(
                    f"Malformed {stage} command for profile '{profile.name}': {e}", template
                )
                error.position = e.position
                raise error from e

        return PreparedStep(
            profile=profile,
            environment_name=environment_name,
            action=action,
            shell=environment.shell,
            parameters=parameters,
            commands=commands,
        )

    def run(self, step: PreparedStep) -> Outcome:
        """Run a prepared step through the state machine."""
        outcome = Outcome(
            profile_name=step.profile_name,
            environment_name=step.environment_name,
            action=step.action,
            status=OutcomeStatus.SUCCESS,
        )
        if step.is_composition:
            logger.debug(f"Profile {step.profile_name} is a composition profile, nothing to run")
            return outcome

        if step.action is Action.ENABLE and "can_enable" in step.commands:
            result = self._run_stage(step, "can_enable", outcome)
            if not result.completed:
                return self._finish(outcome, OutcomeStatus.COMMAND_FAILURE, result)
            if not result.success:
                return self._finish(outcome, OutcomeStatus.CANNOT_ENABLE, result)

        if "is_enabled" in step.commands:
            result = self._run_stage(step, "is_enabled", outcome)
            if not result.completed:
                return self._finish(outcome, OutcomeStatus.COMMAND_FAILURE, result)
            satisfied = result.success if step.action is Action.ENABLE else not result.success
            if satisfied:
                return self._finish(outcome, OutcomeStatus.ALREADY_SATISFIED, result)

        result = self._run_stage(step, step.action.value, outcome)
        if result.success:
            return self._finish(outcome, OutcomeStatus.SUCCESS, result)
        return self._finish(outcome, OutcomeStatus.COMMAND_FAILURE, result)

    def execute(
        self,
        profile: Profile,
        environment_name: str,
        action: Action,
        overrides: Mapping[str, str] | None = None,
    ) -> Outcome:
        """Prepare and run one profile step."""
        return self.run(self.prepare(profile, environment_name, action, overrides))

    def _run_stage(self, step: PreparedStep, stage: str, outcome: Outcome) -> CommandResult:
        command = step.commands[stage]
        logger.debug(f"Running command {stage}: {command}")
        result = self.runner(command, step.shell)
        logger.debug(f"Command exited with code {result.returncode}")
        outcome.commands_run.append(stage)
        return result

    @staticmethod
    def _finish(outcome: Outcome, status: OutcomeStatus, result: CommandResult) -> Outcome:
        outcome.status = status
        outcome.exit_code = result.returncode
        if not status.succeeded:
            outcome.output = result.output
            if result.timed_out and not outcome.output:
                outcome.output = "command timed out"
        return outcome


__all__ = ["CommandRunner", "PreparedStep", "ProfileExecutor"]
