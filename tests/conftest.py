import io
import tarfile
from dataclasses import dataclass
from pathlib import Path

import pytest

from depot_cli import config
from depot_cli.models import BuildContext


TARGET = "x86_64-unknown-linux-gnu"
PROFILE = "debug"
COMPILER_VERSION = "rustc 1.70.0 (90c541806 2023-05-31)"


@pytest.fixture(autouse=True)
def _hermetic_env(tmp_path, monkeypatch):
    # Keep the user's settings and the surrounding build out of the tests
    config_dir = tmp_path / "depot-config"
    monkeypatch.setattr(config, "CONFIG_DIR", str(config_dir))
    monkeypatch.setattr(config, "CONFIG_FILE", str(config_dir / "config.json"))
    for name in ("OUT_DIR", "CARGO_MANIFEST_DIR", "TARGET", "PROFILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DEPOT_COMPILER_VERSION", COMPILER_VERSION)


@dataclass
class BuildTree:
    """A synthetic target directory laid out the way the orchestrator builds it."""
    root: Path
    project_root: Path
    private_dir: Path
    out_dir: Path
    deps_dir: Path

    def dummy(self, file_name: str, content: bytes = b"") -> Path:
        path = self.deps_dir / file_name
        path.write_bytes(content)
        return path

    def listing(self):
        return sorted(p.name for p in self.deps_dir.iterdir())

    def context(self, **overrides) -> BuildContext:
        values = dict(
            target=TARGET,
            profile=PROFILE,
            project_root=self.project_root,
            deps_dir=self.deps_dir,
            compiler_version=COMPILER_VERSION,
        )
        values.update(overrides)
        return BuildContext(**values)

    def environ(self, **extra):
        environ = {
            "OUT_DIR": str(self.out_dir),
            "CARGO_MANIFEST_DIR": str(self.project_root),
            "TARGET": TARGET,
            "PROFILE": PROFILE,
            "DEPOT_COMPILER_VERSION": COMPILER_VERSION,
        }
        environ.update(extra)
        return environ


@pytest.fixture()
def build_tree(tmp_path: Path) -> BuildTree:
    project_root = tmp_path / "project"
    private_dir = project_root / "private"
    target_dir = tmp_path / "target" / PROFILE
    out_dir = target_dir / "build" / "example-5f1c2a" / "out"
    deps_dir = target_dir / "deps"
    for directory in (private_dir, out_dir, deps_dir):
        directory.mkdir(parents=True)
    return BuildTree(
        root=tmp_path,
        project_root=project_root,
        private_dir=private_dir,
        out_dir=out_dir,
        deps_dir=deps_dir,
    )


def write_archive(path: Path, entries, mode: str = "w:gz") -> Path:
    """Write a tar archive of ``(name, bytes)`` entries."""
    with tarfile.open(path, mode=mode) as tf:
        for name, data in entries:
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return path


def archive_bytes(entries, mode: str = "w:gz") -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=mode) as tf:
        for name, data in entries:
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buffer.getvalue()
