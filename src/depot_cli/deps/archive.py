"""Container archive detection and extraction."""

import lzma
import tarfile
import zlib
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union

from ..errors import AmbiguousPrimaryArtifact, ArchiveError, CorruptArchive, MissingPrimaryArtifact
from ..models.depot_package import (
    DEFAULT_EXPORT,
    ArchiveEntry,
    ArchiveManifest,
    FetchedResource,
    RawArtifact,
)


# Compression signatures of the tar containers we accept
ARCHIVE_SIGNATURES = (
    b"\x1f\x8b",            # gzip
    b"BZh",                 # bzip2
    b"\xfd7zXZ\x00",        # xz
)

CHUNK_SIZE = 64 * 1024

_DECODE_ERRORS = (tarfile.TarError, EOFError, zlib.error, lzma.LZMAError, OSError, ValueError)


def sniff_archive(path: Path) -> bool:
    """Check whether a file starts with a compressed tar signature.

    Detection is by content only; URLs and file names need not carry an
    accurate extension.
    """
    with open(path, "rb") as f:
        header = f.read(6)
    return any(header.startswith(signature) for signature in ARCHIVE_SIGNATURES)


class ArchiveExtractor:
    """Unpacks container archives into a staging directory."""

    def __init__(self, staging_dir: Path):
        self.staging_dir = Path(staging_dir)

    def extract(self, resource: FetchedResource, export_name: str = DEFAULT_EXPORT,
                package_name: Optional[str] = None) -> Union[ArchiveManifest, RawArtifact]:
        """Recover the primary artifact and its auxiliaries from a fetched resource.

        Args:
            resource: Fetched package source
            export_name: File name of the archive's primary entry
            package_name: Package being extracted (for error reporting)

        Returns:
            ArchiveManifest for archives, RawArtifact for anything else

        Raises:
            CorruptArchive: If the archive can't be decoded or holds unusable entries
            MissingPrimaryArtifact: If no entry is named ``export_name``
            AmbiguousPrimaryArtifact: If several entries are named ``export_name``
        """
        if not resource.is_archive:
            return RawArtifact(path=resource.path)

        try:
            with tarfile.open(resource.path, mode="r:*") as archive:
                members = self._select_members(archive.getmembers(), export_name, package_name)
                self.staging_dir.mkdir(parents=True, exist_ok=True)
                entries = [self._unpack(archive, member, name, package_name) for name, member in members]
        except ArchiveError:
            raise
        except _DECODE_ERRORS as e:
            raise CorruptArchive(f"Failed to decode archive '{resource.path}': {e}", package_name) from e

        primary = next(entry for entry in entries if entry.name == export_name)
        auxiliaries = [entry for entry in entries if entry.name != export_name]
        return ArchiveManifest(primary=primary, auxiliaries=auxiliaries)

    @staticmethod
    def _select_members(members: List[tarfile.TarInfo], export_name: str,
                        package_name: Optional[str]) -> List[tuple]:
        """Validate the archive listing and pair each file member with its output name."""
        selected = []
        seen = set()
        for member in members:
            if member.isdir():
                continue
            if not member.isfile():
                raise CorruptArchive(
                    f"Unsupported archive entry '{member.name}' (links and special files are not allowed)",
                    package_name,
                )

            # Archives are flat; nested entries keep only their file name
            name = PurePosixPath(member.name).name
            if not name or name in (".", ".."):
                raise CorruptArchive(f"Archive entry '{member.name}' has no file name", package_name)
            if name in seen and name != export_name:
                raise CorruptArchive(f"Duplicate archive entry '{name}'", package_name)
            seen.add(name)
            selected.append((name, member))

        primary_count = sum(1 for name, _ in selected if name == export_name)
        if primary_count == 0:
            raise MissingPrimaryArtifact(export_name, package_name)
        if primary_count > 1:
            raise AmbiguousPrimaryArtifact(export_name, primary_count, package_name)
        return selected

    def _unpack(self, archive: tarfile.TarFile, member: tarfile.TarInfo, name: str,
                package_name: Optional[str]) -> ArchiveEntry:
        source = archive.extractfile(member)
        if source is None:
            raise CorruptArchive(f"Archive entry '{member.name}' has no data", package_name)

        destination = self.staging_dir / name
        with source:
            try:
                out = open(destination, "wb")
            except OSError as e:
                raise ArchiveError(f"Could not write '{destination}': {e}", package_name) from e
            with out:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    try:
                        out.write(chunk)
                    except OSError as e:
                        raise ArchiveError(f"Could not write '{destination}': {e}", package_name) from e
        return ArchiveEntry(name=name, path=destination)
