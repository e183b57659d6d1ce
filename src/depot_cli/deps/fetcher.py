"""Source retrieval for pre-built artifacts."""

import re
import ssl
import threading
import urllib.parse
from pathlib import Path
from typing import Optional

import httpx
import truststore

from ..errors import ConfigurationError, FetchError, NotFound, TransportError, UnexpectedStatus, UnsupportedScheme
from ..models.depot_package import (
    FILE_SCHEME,
    HTTP_SCHEME,
    HTTPS_SCHEME,
    FetchedResource,
    ResolvedLocator,
)
from .archive import sniff_archive


CHUNK_SIZE = 8192
DEFAULT_TIMEOUT = 60.0
DEFAULT_MAX_REDIRECTS = 5


def classify_locator(source: str, project_root: Optional[Path] = None,
                     package_name: Optional[str] = None) -> ResolvedLocator:
    """Classify a resolved locator string into a scheme and a concrete location.

    Local paths may be written bare or with a ``file://`` prefix; relative
    paths are joined to the project root (absolute paths replace it).

    Args:
        source: Fully substituted locator
        project_root: Directory relative file paths are resolved against
        package_name: Package the locator belongs to (for error reporting)

    Returns:
        ResolvedLocator: The classified locator

    Raises:
        UnsupportedScheme: If the locator uses a scheme other than file, http or https
        ConfigurationError: If an http(s) locator has no host
    """
    root = Path(project_root) if project_root is not None else Path.cwd()

    if source.startswith("file://"):
        path = root / source[len("file://"):]
        return ResolvedLocator(FILE_SCHEME, str(path))

    if "://" not in source:
        return ResolvedLocator(FILE_SCHEME, str(root / source))

    # SECURITY: always go through urllib.parse rather than substring checks
    parsed = urllib.parse.urlsplit(source)
    scheme = parsed.scheme.lower()
    if scheme not in (HTTP_SCHEME, HTTPS_SCHEME):
        raise UnsupportedScheme(scheme or source.split("://", 1)[0], source, package_name)
    if not parsed.netloc:
        raise ConfigurationError(f"URL '{source}' has no host", package_name)
    return ResolvedLocator(scheme, source)


def _download_name(url: str, package_name: str) -> str:
    """File name used for a downloaded resource inside the staging directory."""
    name = Path(urllib.parse.urlsplit(url).path).name
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name).lstrip(".")
    return name or f"{package_name}.download"


class SourceFetcher:
    """Retrieves package sources from local paths or HTTP(S) URLs."""

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = DEFAULT_TIMEOUT,
                 max_redirects: int = DEFAULT_MAX_REDIRECTS, verify_tls: bool = True):
        """Initialize the fetcher.

        Args:
            client: HTTP client to use; one is created on first download if omitted
            timeout: Connect/read timeout in seconds for downloads
            max_redirects: Maximum redirect hops followed per download
            verify_tls: Verify server certificates against the system trust store
        """
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.verify_tls = verify_tls
        self._client = client
        self._owns_client = client is None
        self._client_lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None:
                verify = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT) if self.verify_tls else False
                self._client = httpx.Client(verify=verify, max_redirects=self.max_redirects)
            return self._client

    def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        with self._client_lock:
            if self._owns_client and self._client is not None:
                self._client.close()
                self._client = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def fetch(self, locator: ResolvedLocator, staging_dir: Path, package_name: str) -> FetchedResource:
        """Materialize a package source locally.

        Args:
            locator: Classified source locator
            staging_dir: Directory owned by this run where downloads are written
            package_name: Package being fetched (for error reporting)

        Returns:
            FetchedResource: Local path of the resource, tagged archive or raw

        Raises:
            NotFound: If a local source doesn't exist
            TransportError: On connection, timeout, TLS or redirect failures
            UnexpectedStatus: On a non-success HTTP status
        """
        if locator.scheme == FILE_SCHEME:
            path = locator.path
            if not path.is_file():
                raise NotFound(f"Source file '{path}' does not exist", package_name)
            return FetchedResource(
                path=path,
                is_archive=self._sniff(path, package_name),
                locator=locator,
            )

        staging_dir.mkdir(parents=True, exist_ok=True)
        path = staging_dir / _download_name(locator.location, package_name)
        try:
            self._download(locator.location, path, package_name)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        return FetchedResource(
            path=path,
            is_archive=self._sniff(path, package_name),
            locator=locator,
            downloaded=True,
        )

    def _download(self, url: str, path: Path, package_name: str) -> None:
        try:
            with self.client.stream("GET", url, timeout=self.timeout, follow_redirects=True) as response:
                if not response.is_success:
                    raise UnexpectedStatus(url, response.status_code, package_name)
                with open(path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
        except httpx.TooManyRedirects as e:
            raise TransportError(
                f"Too many redirects (limit {self.max_redirects}) fetching '{url}'", package_name
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"Failed to download '{url}': {e}", package_name) from e
        except OSError as e:
            raise FetchError(f"Could not write download of '{url}' to {path}: {e}", package_name) from e

    @staticmethod
    def _sniff(path: Path, package_name: str) -> bool:
        try:
            return sniff_archive(path)
        except OSError as e:
            raise FetchError(f"Could not read '{path}': {e}", package_name) from e
