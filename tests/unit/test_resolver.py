"""Unit tests for dependency resolution."""

import pytest

from nprofile.exceptions import DependencyCycleError, UnknownProfileError
from nprofile.models import Action, Dependency, ProfileConfig
from nprofile.resolver import DependencyResolver


@pytest.mark.unit
class TestResolveOrder:
    """Test plan ordering for enable and disable."""

    def test_enable_orders_dependencies_first(self, work_config):
        plan = DependencyResolver(work_config).resolve("work", Action.ENABLE, "linux")
        assert plan.profile_names == ["vpn", "wifi", "work"]
        assert plan.action is Action.ENABLE
        assert plan.target == "work"

    def test_disable_is_reverse_of_enable(self, work_config):
        resolver = DependencyResolver(work_config)
        enable = resolver.resolve("work", Action.ENABLE, "linux")
        disable = resolver.resolve("work", Action.DISABLE, "linux")
        assert disable.profile_names == list(reversed(enable.profile_names))

    def test_leaf_profile_plan_is_itself(self, work_config):
        plan = DependencyResolver(work_config).resolve("vpn", Action.ENABLE, "linux")
        assert plan.profile_names == ["vpn"]

    def test_alias_resolves_to_canonical_name(self, work_config):
        plan = DependencyResolver(work_config).resolve("w", Action.ENABLE, "linux")
        assert plan.target == "wifi"
        assert plan.profile_names == ["wifi"]

    def test_composition_profile_gets_a_slot(self, work_config):
        plan = DependencyResolver(work_config).resolve("work", Action.ENABLE, "linux")
        assert [entry.is_composition for entry in plan] == [False, False, True]
        assert [entry.profile_name for entry in plan.actionable] == ["vpn", "wifi"]

    def test_siblings_follow_declaration_order(self, make_profile):
        config = ProfileConfig(
            [
                make_profile("a"),
                make_profile("b"),
                make_profile("c"),
                make_profile("top", dependencies=["c", "a", "b"]),
            ]
        )
        plan = DependencyResolver(config).resolve("top", Action.ENABLE, "linux")
        assert plan.profile_names == ["c", "a", "b", "top"]

    def test_deep_chain_does_not_recurse(self, make_profile):
        profiles = [make_profile("p0")]
        for i in range(1, 3000):
            profiles.append(make_profile(f"p{i}", dependencies=[f"p{i - 1}"]))
        plan = DependencyResolver(ProfileConfig(profiles)).resolve("p2999", Action.ENABLE, "linux")
        assert len(plan) == 3000
        assert plan.profile_names[0] == "p0"
        assert plan.profile_names[-1] == "p2999"


@pytest.mark.unit
class TestResolveDeduplication:
    """Test that shared dependencies appear once."""

    def test_diamond_dependency_appears_once(self, make_profile):
        config = ProfileConfig(
            [
                make_profile("base"),
                make_profile("left", dependencies=["base"]),
                make_profile("right", dependencies=["base"]),
                make_profile("top", dependencies=["left", "right"]),
            ]
        )
        plan = DependencyResolver(config).resolve("top", Action.ENABLE, "linux")
        assert plan.profile_names == ["base", "left", "right", "top"]

    def test_alias_and_name_of_same_profile_dedupe(self, work_config, make_profile):
        config = ProfileConfig(
            [
                *work_config,
                make_profile("both", dependencies=["wifi", "w"], environments={}),
            ]
        )
        plan = DependencyResolver(config).resolve("both", Action.ENABLE, "linux")
        assert plan.profile_names == ["wifi", "both"]


@pytest.mark.unit
class TestResolveEnvironments:
    """Test environment selection for dependencies."""

    def test_dependencies_inherit_requested_environment(self, work_config):
        plan = DependencyResolver(work_config).resolve("work", Action.ENABLE, "linux")
        assert {entry.environment_name for entry in plan} == {"linux"}

    def test_pinned_dependency_environment(self, make_profile, make_environment):
        config = ProfileConfig(
            [
                make_profile(
                    "radio",
                    environments={
                        "linux": make_environment(),
                        "linux-nmcli": make_environment("linux-nmcli"),
                    },
                ),
                make_profile("lan", dependencies=[Dependency("radio", environment="linux-nmcli")]),
            ]
        )
        plan = DependencyResolver(config).resolve("lan", Action.ENABLE, "linux")
        assert [entry.key for entry in plan] == [("radio", "linux-nmcli"), ("lan", "linux")]

    def test_pin_does_not_propagate_to_grandchildren(self, make_profile, make_environment):
        both = {"linux": make_environment(), "macos": make_environment("macos")}
        config = ProfileConfig(
            [
                make_profile("leaf", environments=both),
                make_profile("mid", dependencies=["leaf"], environments=both),
                make_profile("top", dependencies=[Dependency("mid", environment="macos")]),
            ]
        )
        plan = DependencyResolver(config).resolve("top", Action.ENABLE, "linux")
        assert [entry.key for entry in plan] == [
            ("leaf", "linux"),
            ("mid", "macos"),
            ("top", "linux"),
        ]

    def test_same_profile_in_two_environments_keeps_both(self, make_profile, make_environment):
        both = {"linux": make_environment(), "macos": make_environment("macos")}
        config = ProfileConfig(
            [
                make_profile("radio", environments=both),
                make_profile(
                    "top",
                    dependencies=["radio", Dependency("radio", environment="macos")],
                ),
            ]
        )
        plan = DependencyResolver(config).resolve("top", Action.ENABLE, "linux")
        assert [entry.key for entry in plan] == [
            ("radio", "linux"),
            ("radio", "macos"),
            ("top", "linux"),
        ]


@pytest.mark.unit
class TestResolveErrors:
    """Test unknown references and cycles."""

    def test_unknown_target(self, work_config):
        expected = "possible values are: vpn, wifi, work"
        with pytest.raises(UnknownProfileError, match=expected) as exc_info:
            DependencyResolver(work_config).resolve("lan", Action.ENABLE, "linux")
        assert exc_info.value.name == "lan"
        assert exc_info.value.referenced_by is None

    def test_unknown_dependency_names_referencing_profile(self, make_profile):
        config = ProfileConfig([make_profile("work", dependencies=["vpn"])])
        expected = "depends on unknown profile 'vpn'"
        with pytest.raises(UnknownProfileError, match=expected) as exc_info:
            DependencyResolver(config).resolve("work", Action.ENABLE, "linux")
        assert exc_info.value.referenced_by == "work"

    def test_two_profile_cycle(self, make_profile):
        config = ProfileConfig(
            [make_profile("a", dependencies=["b"]), make_profile("b", dependencies=["a"])]
        )
        with pytest.raises(DependencyCycleError) as exc_info:
            DependencyResolver(config).resolve("a", Action.ENABLE, "linux")
        assert exc_info.value.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(exc_info.value)

    def test_self_dependency_is_a_cycle(self, make_profile):
        config = ProfileConfig([make_profile("loop", dependencies=["loop"])])
        with pytest.raises(DependencyCycleError) as exc_info:
            DependencyResolver(config).resolve("loop", Action.DISABLE, "linux")
        assert exc_info.value.cycle == ["loop", "loop"]

    def test_cycle_reported_from_its_start(self, make_profile):
        config = ProfileConfig(
            [
                make_profile("entry", dependencies=["x"]),
                make_profile("x", dependencies=["y"]),
                make_profile("y", dependencies=["x"]),
            ]
        )
        with pytest.raises(DependencyCycleError) as exc_info:
            DependencyResolver(config).resolve("entry", Action.ENABLE, "linux")
        assert exc_info.value.cycle == ["x", "y", "x"]

    def test_cycle_through_alias(self, make_profile):
        config = ProfileConfig(
            [
                make_profile("a", dependencies=["bee"]),
                make_profile("b", aliases=["bee"], dependencies=["a"]),
            ]
        )
        with pytest.raises(DependencyCycleError):
            DependencyResolver(config).resolve("a", Action.ENABLE, "linux")

    def test_reset_is_not_resolvable(self, work_config):
        with pytest.raises(ValueError, match="reset"):
            DependencyResolver(work_config).resolve("work", Action.RESET, "linux")


@pytest.mark.unit
class TestResolveAll:
    """Test whole-configuration validation."""

    def test_valid_config_has_no_errors(self, work_config):
        assert DependencyResolver(work_config).resolve_all("linux") == {}

    def test_collects_errors_per_profile(self, make_profile):
        config = ProfileConfig(
            [
                make_profile("ok"),
                make_profile("broken", dependencies=["missing"]),
                make_profile("a", dependencies=["b"]),
                make_profile("b", dependencies=["a"]),
            ]
        )
        errors = DependencyResolver(config).resolve_all("linux")
        assert set(errors) == {"broken", "a", "b"}
        assert isinstance(errors["broken"], UnknownProfileError)
        assert isinstance(errors["a"], DependencyCycleError)
