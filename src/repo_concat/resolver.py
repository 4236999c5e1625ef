import logging
import os
import shutil
import tempfile
from typing import Optional

from opentelemetry import trace

from .errors import ConfigurationError, FetchError
from .models import SourceConfig
from .volume_manager.git_fetcher import Fetcher, GitFetcher
from .volume_manager.repo_cache import RepoCache

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def validate_source(source: SourceConfig) -> None:
    """
    Raises:
        ConfigurationError: when neither or both of `url` and `path` are set.
    """
    if not source.url and not source.path:
        raise ConfigurationError("either a repository URL or a local directory path is required")
    if source.url and source.path:
        raise ConfigurationError("cannot specify both a repository URL and a local directory path")


class RepositoryResolver:
    """
    Turns a `SourceConfig` into a local directory to scan.

    **Workflow for remote sources:**
    1.  **Cache lookup**: a valid entry short-circuits everything else.
    2.  **Fetch**: the fetcher clones into a private staging directory under the cache root.
    3.  **Adopt**: the checkout is moved to the cache's deterministic path for the URL.
    4.  **Record**: metadata is written with a fresh expiry.

    Local paths are returned untouched; their existence is checked by the scan itself.
    """

    def __init__(self, cache: Optional[RepoCache] = None, fetcher: Optional[Fetcher] = None):
        self.cache = cache or RepoCache()
        self.fetcher = fetcher or GitFetcher()
        self.last_cached_at = None

    def resolve(self, source: SourceConfig) -> str:
        validate_source(source)
        self.last_cached_at = None

        if source.path:
            return source.path

        url = source.url
        with tracer.start_as_current_span("resolver.resolve") as span:
            span.set_attribute("repo.url", url)

            hit = self.cache.lookup(url)
            span.set_attribute("cache.hit", hit.found)
            if hit.found:
                logger.info(f"♻️ Using cached repository for {url}: {hit.path}")
                self.last_cached_at = hit.cached_at
                return hit.path

            try:
                repo_path = self._fetch_into_cache(url)
            except FetchError as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR))
                raise

        return repo_path

    def _fetch_into_cache(self, url: str) -> str:
        try:
            os.makedirs(self.cache.root, exist_ok=True)
            staging_dir = tempfile.mkdtemp(prefix=".fetch-", dir=self.cache.root)
        except OSError as e:
            raise FetchError(f"unable to prepare cache directory {self.cache.root}: {e}") from e

        try:
            try:
                checkout = self.fetcher.fetch(url, staging_dir)
            except FetchError as e:
                raise FetchError(f"failed to clone repository {url}: {e}") from e

            target = self.cache.checkout_path(url)
            try:
                if os.path.exists(target):
                    shutil.rmtree(target)
                os.replace(checkout, target)
            except OSError as e:
                raise FetchError(f"unable to move checkout of {url} into the cache: {e}") from e
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)

        try:
            self.cache.store(url, target)
        except OSError as e:
            # Every checkout under the cache root has a metadata record
            shutil.rmtree(target, ignore_errors=True)
            raise FetchError(f"unable to record cache entry for {url}: {e}") from e
        return target


def resolve(source: SourceConfig, cache: Optional[RepoCache] = None, fetcher: Optional[Fetcher] = None) -> str:
    return RepositoryResolver(cache=cache, fetcher=fetcher).resolve(source)
