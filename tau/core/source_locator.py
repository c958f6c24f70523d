"""
Locating definition files for modules and dependencies.

A source is a path (relative to the declaring module's directory, or
absolute) to a single definition file or to a directory of them, or an
http(s) URL to a single definition file.
"""

import hashlib
import logging
import os
from typing import List, Sequence
from urllib.parse import urlparse

import requests

from ..errors import FetchFailure, FetchTimeout, NotFound

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10
DEFAULT_CACHE_DIR = os.path.join(".tau", "sources")
DEFAULT_EXTENSIONS = (".hcl", ".tau")
USER_AGENT = "tau-client"


class SourceLocator:
    """
    Resolve sources to local definition file paths.

    Remote definitions are downloaded into a cache directory; a download
    taking longer than the timeout is abandoned.
    """

    def __init__(
        self,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        timeout: float = DEFAULT_TIMEOUT,
        cache_dir: str = DEFAULT_CACHE_DIR,
    ):
        """
        Args:
            extensions: File extensions that count as definitions in a directory
            timeout: Seconds before a remote download fails with FetchTimeout
            cache_dir: Where remote definitions are stored; a relative
                path is taken relative to the base directory
        """
        self.extensions = tuple(extensions)
        self.timeout = timeout
        self.cache_dir = cache_dir

    @staticmethod
    def is_remote(source: str) -> bool:
        return urlparse(source).scheme in ("http", "https")

    def locate(self, source: str, base_dir: str) -> List[str]:
        """
        Resolve a source to one or more definition files.

        Args:
            source: Path or URL as written in the definition
            base_dir: Directory relative paths are resolved against

        Returns:
            Absolute paths, sorted by name when the source is a directory

        Raises:
            NotFound: If the path does not exist or holds no definitions
            FetchTimeout: If a remote download exceeds the timeout
            FetchFailure: If a remote download fails otherwise
        """
        if self.is_remote(source):
            return [self._download(source, base_dir)]

        path = os.path.abspath(os.path.join(base_dir, os.path.expanduser(source)))

        if not os.path.exists(path):
            raise NotFound(f"Source does not exist: {source} (resolved to {path})")

        if not os.path.isdir(path):
            return [path]

        files = sorted(
            os.path.join(path, name)
            for name in os.listdir(path)
            if name.endswith(self.extensions) and os.path.isfile(os.path.join(path, name))
        )

        if not files:
            raise NotFound(f"No definition files found in {path}")

        logger.debug(f"Found {len(files)} definition files in {path}")
        return files

    def _download(self, url: str, base_dir: str) -> str:
        cache_dir = os.path.join(base_dir, self.cache_dir)
        os.makedirs(cache_dir, exist_ok=True)

        digest = hashlib.md5(url.encode("utf-8")).hexdigest()[:12]
        filename = os.path.basename(urlparse(url).path) or "source.hcl"
        destination = os.path.join(cache_dir, f"{digest}_{filename}")

        logger.info(f"Downloading {url}")

        try:
            response = requests.get(
                url,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise FetchTimeout(f"Timed out after {self.timeout}s fetching {url}") from e
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                raise NotFound(f"Source does not exist: {url}") from e
            raise FetchFailure(f"Failed to fetch {url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise FetchFailure(f"Failed to fetch {url}: {e}") from e

        with open(destination, "wb") as f:
            f.write(response.content)

        return destination
