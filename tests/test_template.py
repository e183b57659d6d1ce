import pytest

from depot_cli.core.template import TemplateResolver, render
from depot_cli.errors import MalformedTemplate, MissingEnvironmentVariable, UnknownVariable
from depot_cli.models import Substitution

from conftest import COMPILER_VERSION, PROFILE, TARGET


def test_plain_strings_pass_through(build_tree):
    resolver = TemplateResolver(build_tree.context(), environ={})
    assert resolver.resolve("") == ""
    assert resolver.resolve("foo") == "foo"
    assert resolver.resolve("foo", version="10") == "foo"


def test_builtins(build_tree):
    resolver = TemplateResolver(build_tree.context(), environ={})
    assert resolver.resolve("{{target}}/{{profile}}") == f"{TARGET}/{PROFILE}"
    assert resolver.resolve("{{compiler_version}}") == COMPILER_VERSION
    assert resolver.resolve("foo{{version}}", version="10") == "foo10"


def test_placeholder_whitespace_is_ignored(build_tree):
    resolver = TemplateResolver(build_tree.context(), environ={})
    assert resolver.resolve("lib-{{ target }}.tar.gz") == f"lib-{TARGET}.tar.gz"


def test_version_is_unknown_without_declared_version(build_tree):
    resolver = TemplateResolver(build_tree.context(), environ={})
    with pytest.raises(UnknownVariable) as exc:
        resolver.resolve("{{version}}", package_name="priv")
    assert exc.value.name == "version"
    assert exc.value.package_name == "priv"


def test_compiler_version_absent_when_unknown(build_tree):
    resolver = TemplateResolver(build_tree.context(compiler_version=None), environ={})
    assert "compiler_version" not in resolver.variables()
    with pytest.raises(UnknownVariable):
        resolver.resolve("{{compiler_version}}")


def test_literal_substitution(build_tree):
    substitutions = {"dhl_val": Substitution("dhl_val", "dhl_test_value")}
    resolver = TemplateResolver(build_tree.context(), substitutions, environ={})
    assert resolver.resolve("{{dhl_val}}") == "dhl_test_value"
    assert resolver.resolve("foo{{dhl_val}}") == "foodhl_test_value"


def test_environment_substitution(build_tree):
    substitutions = {"dhl_var": Substitution("dhl_var", "DHL_TEST_ENV_VAR", from_env=True)}
    resolver = TemplateResolver(
        build_tree.context(), substitutions, environ={"DHL_TEST_ENV_VAR": "dhl_test_env_val"}
    )
    assert resolver.resolve("foo{{dhl_var}}") == "foodhl_test_env_val"


def test_environment_read_at_resolution_time(build_tree, monkeypatch):
    substitutions = {"channel": Substitution("channel", "DEPOT_TEST_CHANNEL", from_env=True)}
    resolver = TemplateResolver(build_tree.context(), substitutions)
    monkeypatch.setenv("DEPOT_TEST_CHANNEL", "nightly")
    assert resolver.resolve("{{channel}}") == "nightly"
    monkeypatch.setenv("DEPOT_TEST_CHANNEL", "stable")
    assert resolver.resolve("{{channel}}") == "stable"


def test_missing_environment_variable_is_reported(build_tree):
    substitutions = {"token": Substitution("token", "DEPOT_UNSET_VARIABLE", from_env=True)}
    resolver = TemplateResolver(build_tree.context(), substitutions, environ={})
    with pytest.raises(MissingEnvironmentVariable) as exc:
        resolver.resolve("https://example.com/{{token}}")
    assert exc.value.variable == "DEPOT_UNSET_VARIABLE"


def test_unused_missing_environment_variable_is_not_an_error(build_tree):
    substitutions = {"token": Substitution("token", "DEPOT_UNSET_VARIABLE", from_env=True)}
    resolver = TemplateResolver(build_tree.context(), substitutions, environ={})
    assert resolver.resolve("lib/{{target}}.tar.gz") == f"lib/{TARGET}.tar.gz"


def test_user_variables_replace_builtins(build_tree):
    substitutions = {
        "target": Substitution("target", "TARGET_OVERRIDE", from_env=True),
        "version": Substitution("version", "2.0.0"),
    }
    resolver = TemplateResolver(
        build_tree.context(), substitutions, environ={"TARGET_OVERRIDE": "custom-triple"}
    )
    assert resolver.resolve("{{target}}") == "custom-triple"
    assert resolver.resolve("{{version}}", version="1.0.0") == "2.0.0"


def test_unknown_variable_never_substitutes_empty(build_tree):
    resolver = TemplateResolver(build_tree.context(), environ={})
    with pytest.raises(UnknownVariable):
        resolver.resolve("lib/{{nope}}.tar.gz")


@pytest.mark.parametrize("template", [
    "lib/{{target.tar.gz",
    "lib/target}}.tar.gz",
    "lib/{{}}.tar.gz",
    "lib/{{ two words }}.tar.gz",
    "lib/{{a{{b}}.tar.gz",
    "{{target}}}}",
])
def test_malformed_templates(build_tree, template):
    resolver = TemplateResolver(build_tree.context(), environ={})
    with pytest.raises(MalformedTemplate):
        resolver.resolve(template)


def test_single_braces_are_literal(build_tree):
    resolver = TemplateResolver(build_tree.context(), environ={})
    assert resolver.resolve("lib/{x}/{{profile}}") == f"lib/{{x}}/{PROFILE}"


def test_render_is_deterministic():
    variables = {"a": Substitution("a", "1"), "b": Substitution("b", "2")}
    first = render("{{a}}-{{b}}-{{a}}", variables, environ={})
    second = render("{{a}}-{{b}}-{{a}}", variables, environ={})
    assert first == second == "1-2-1"
    assert render("{{a}}", {"a": Substitution("a", "3")}, environ={}) != first


def test_rustc_short_version_alias(build_tree):
    resolver = TemplateResolver(build_tree.context(), environ={})
    assert resolver.resolve("lib-{{rustc_short_version}}.tar.gz") == f"lib-{COMPILER_VERSION}.tar.gz"
    assert resolver.resolve("{{rustc_short_version}}") == resolver.resolve("{{compiler_version}}")


def test_rustc_short_version_absent_when_unknown(build_tree):
    resolver = TemplateResolver(build_tree.context(compiler_version=None), environ={})
    with pytest.raises(UnknownVariable):
        resolver.resolve("{{rustc_short_version}}")
