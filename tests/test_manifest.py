from pathlib import Path

import pytest

from depot_cli.errors import InvalidOutDir, InvalidPlacement, ManifestError, MissingEnvironmentVariable
from depot_cli.models import BuildContext, Manifest, PlacementStrategy
from depot_cli.models.depot_package import DEFAULT_EXPORT, detect_compiler_version

from conftest import COMPILER_VERSION, PROFILE, TARGET


CARGO_TOML = """
[package]
name = "example"
version = "0.1.0"

[package.metadata.depot.substitutions]
dhl_val = "dhl_test_value"
dhl_var = { value = "DHL_TEST_ENV_VAR", env = true }
release = 3

[package.metadata.depot.packages]
private-a = "private/private_a-{{version}}.tar.gz"
private_b = { source = "private/libprivate_b.rlib", link = "hard" }
private_c = { source = "https://example.com/{{target}}/c.tar.gz", export = "main.rlib" }

[dependencies]
private-a = "0.1.0"
private_b = { version = "0.2.0", path = "../dummy/private_b" }
private_c = { path = "../dummy/private_c" }
serde = "1"
"""


def test_toml_manifest_packages():
    manifest = Manifest.from_toml(CARGO_TOML, Path("/work/example"))

    assert list(manifest.packages) == ["private-a", "private_b", "private_c"]
    a = manifest.packages["private-a"]
    assert a.source == "private/private_a-{{version}}.tar.gz"
    assert a.link is PlacementStrategy.COPY
    assert a.version == "0.1.0"
    assert a.export_name == DEFAULT_EXPORT
    assert a.crate_name == "private_a"

    b = manifest.packages["private_b"]
    assert b.link is PlacementStrategy.HARD_LINK
    assert b.version == "0.2.0"

    c = manifest.packages["private_c"]
    assert c.version is None
    assert c.export_name == "main.rlib"
    assert manifest.project_root == Path("/work/example")


def test_toml_manifest_substitutions():
    manifest = Manifest.from_toml(CARGO_TOML)

    assert manifest.substitutions["dhl_val"].value == "dhl_test_value"
    assert not manifest.substitutions["dhl_val"].from_env
    assert manifest.substitutions["dhl_var"].value == "DHL_TEST_ENV_VAR"
    assert manifest.substitutions["dhl_var"].from_env
    assert manifest.substitutions["release"].value == "3"


def test_toml_manifest_without_depot_table():
    with pytest.raises(ManifestError):
        Manifest.from_toml('[package]\nname = "example"\n')


def test_toml_manifest_invalid_syntax():
    with pytest.raises(ManifestError):
        Manifest.from_toml("[package\nname = ")


def test_toml_package_without_source():
    content = '[package.metadata.depot.packages]\npriv = { link = "copy" }\n'
    with pytest.raises(ManifestError) as exc:
        Manifest.from_toml(content)
    assert exc.value.package_name == "priv"


def test_unknown_link_strategy():
    content = '[package.metadata.depot.packages]\npriv = { source = "a.rlib", link = "teleport" }\n'
    with pytest.raises(InvalidPlacement):
        Manifest.from_toml(content)


@pytest.mark.parametrize("spelling,expected", [
    (None, PlacementStrategy.COPY),
    ("copy", PlacementStrategy.COPY),
    ("hard", PlacementStrategy.HARD_LINK),
    ("Hard-Link", PlacementStrategy.HARD_LINK),
    ("symbolic", PlacementStrategy.SYMBOLIC_LINK),
    ("symlink", PlacementStrategy.SYMBOLIC_LINK),
])
def test_placement_spellings(spelling, expected):
    assert PlacementStrategy.parse(spelling) is expected


def test_yaml_manifest(tmp_path):
    manifest_path = tmp_path / "depot.yml"
    manifest_path.write_text(
        "substitutions:\n"
        "  channel:\n"
        "    value: DEPOT_CHANNEL\n"
        "    env: true\n"
        "packages:\n"
        "  priv:\n"
        "    source: https://example.com/{{channel}}/priv-{{version}}.tar.gz\n"
        "    version: 1.2.3\n"
        "  raw: private/libraw.rlib\n",
        encoding="utf-8",
    )

    manifest = Manifest.from_file(manifest_path)

    assert manifest.project_root == tmp_path.resolve()
    assert manifest.packages["priv"].version == "1.2.3"
    assert manifest.packages["raw"].source == "private/libraw.rlib"
    assert manifest.substitutions["channel"].from_env


def test_yaml_manifest_must_be_mapping():
    with pytest.raises(ManifestError):
        Manifest.from_yaml("- just\n- a list\n")


def test_manifest_file_missing(tmp_path):
    with pytest.raises(ManifestError):
        Manifest.from_file(tmp_path / "Cargo.toml")


def test_deps_dir_from_out_dir():
    out_dir = Path("/work/target/debug/build/example-5f1c2a/out")
    assert BuildContext.deps_dir_from_out_dir(out_dir) == Path("/work/target/debug/deps")


def test_deps_dir_from_shallow_out_dir():
    with pytest.raises(InvalidOutDir):
        BuildContext.deps_dir_from_out_dir("out")


def test_build_context_from_env(build_tree):
    context = BuildContext.from_env(build_tree.environ())

    assert context.target == TARGET
    assert context.profile == PROFILE
    assert context.project_root == build_tree.project_root
    assert context.deps_dir == build_tree.deps_dir
    assert context.compiler_version == COMPILER_VERSION


@pytest.mark.parametrize("missing", ["OUT_DIR", "CARGO_MANIFEST_DIR", "TARGET", "PROFILE"])
def test_build_context_requires_orchestrator_variables(build_tree, missing):
    environ = build_tree.environ()
    del environ[missing]
    with pytest.raises(MissingEnvironmentVariable) as exc:
        BuildContext.from_env(environ)
    assert exc.value.variable == missing


def test_compiler_version_unavailable():
    assert detect_compiler_version({"RUSTC": "/nonexistent/depot-test-rustc"}) is None
