"""Placement of pre-built artifacts over their dummy counterparts.

Every strategy first materializes the new file (copy or link) under a
temporary sibling name and then renames it over the target, so a crash at any
point leaves either the old file or the complete new one at the expected name.
"""

import errno
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import CrossDeviceLink, InjectionError
from ..models.depot_package import PlacementStrategy


class Injector:
    """Places artifacts at injection targets."""

    def inject(self, source_path: Path, target_path: Path, strategy: PlacementStrategy = PlacementStrategy.COPY,
               package_name: Optional[str] = None) -> None:
        """Replace the file at ``target_path`` with ``source_path``.

        Args:
            source_path: Artifact to place
            target_path: Expected output path inside the deps directory
            strategy: Copy, hard link or symbolic link
            package_name: Package being injected (for error reporting)

        Raises:
            CrossDeviceLink: If a hard link would cross filesystems
            InjectionError: On any other filesystem failure
        """
        source_path = Path(source_path)
        target_path = Path(target_path)

        if strategy.is_link and self._already_linked(source_path, target_path, strategy):
            return

        temp_path = self._temp_sibling(target_path, package_name)
        try:
            if strategy is PlacementStrategy.COPY:
                self._copy(source_path, temp_path)
            elif strategy is PlacementStrategy.HARD_LINK:
                os.unlink(temp_path)
                os.link(source_path, temp_path)
            else:
                os.unlink(temp_path)
                os.symlink(source_path.resolve(), temp_path)
            os.replace(temp_path, target_path)
        except OSError as e:
            self._discard(temp_path)
            if e.errno == errno.EXDEV:
                raise CrossDeviceLink(
                    f"Cannot hard-link '{source_path}' to '{target_path}' across filesystems",
                    package_name,
                ) from e
            raise InjectionError(
                f"Failed to {strategy.value} '{source_path}' to '{target_path}': {e}",
                package_name,
            ) from e
        except BaseException:
            self._discard(temp_path)
            raise

    @staticmethod
    def _temp_sibling(target_path: Path, package_name: Optional[str]) -> Path:
        """Reserve a unique temporary name next to the target (same filesystem)."""
        try:
            fd, name = tempfile.mkstemp(
                prefix=f".{target_path.name}.",
                suffix=".tmp",
                dir=target_path.parent,
            )
        except OSError as e:
            raise InjectionError(f"Cannot write to '{target_path.parent}': {e}", package_name) from e
        os.close(fd)
        return Path(name)

    @staticmethod
    def _copy(source_path: Path, temp_path: Path) -> None:
        with open(source_path, "rb") as src, open(temp_path, "wb") as dst:
            shutil.copyfileobj(src, dst)
            dst.flush()
            os.fsync(dst.fileno())
        shutil.copymode(source_path, temp_path)

    @staticmethod
    def _already_linked(source_path: Path, target_path: Path, strategy: PlacementStrategy) -> bool:
        """Whether a previous run already left the requested link in place."""
        if strategy is PlacementStrategy.SYMBOLIC_LINK:
            return (target_path.is_symlink()
                    and os.readlink(target_path) == str(source_path.resolve()))
        try:
            return (not target_path.is_symlink()) and os.path.samefile(source_path, target_path)
        except OSError:
            return False

    @staticmethod
    def _discard(temp_path: Path) -> None:
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
