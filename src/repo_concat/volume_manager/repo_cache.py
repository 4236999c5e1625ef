import datetime
import json
import logging
import os
import shutil
from typing import Callable, Optional, Union

from opentelemetry import trace

from .. import config
from ..errors import CacheReadError
from ..models import MISS, CacheEntry, CacheLookup
from ..utils.hashing import hash_source_id
from ..utils.timestamps import format_rfc3339, parse_rfc3339, utc_now

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Clock = Callable[[], datetime.datetime]


class RepoCache:
    """
    Time-bounded mapping from a remote source to a local checkout.

    **Layout** (one flat directory, the cache root):
    *   `<md5(url)>.json`: metadata record (`url`, `cached_at`, `repo_path`, `expires_at`).
    *   `<md5(url)>/`: the checkout itself, when placed via `checkout_path`.

    **Eviction is lazy**: there is no background sweep. An entry is checked (and, if
    stale, deleted together with its directory) on the next `lookup` for the same key,
    or when a caller runs `prune` explicitly.

    **Concurrency**: no locking. Hosts issuing concurrent `store` calls for the same
    key must serialize them.
    """

    def __init__(
        self,
        root: Optional[str] = None,
        ttl: Union[datetime.timedelta, int, None] = None,
        clock: Clock = utc_now,
    ):
        self.root = os.path.abspath(root or config.cache_root())
        if ttl is None:
            ttl = config.cache_ttl_seconds()
        self.ttl = ttl if isinstance(ttl, datetime.timedelta) else datetime.timedelta(seconds=ttl)
        self._clock = clock

    def key(self, source_id: str) -> str:
        return hash_source_id(source_id)

    def metadata_path(self, source_id: str) -> str:
        return os.path.join(self.root, f"{self.key(source_id)}.json")

    def checkout_path(self, source_id: str) -> str:
        return os.path.join(self.root, self.key(source_id))

    # ==============================================================================
    #  READ PATH
    # ==============================================================================

    def _read_entry(self, source_id: str, metadata_path: str) -> Optional[CacheEntry]:
        try:
            with open(metadata_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            raise CacheReadError(source_id, metadata_path, str(e)) from e

        try:
            return CacheEntry(
                url=payload["url"],
                repo_path=payload["repo_path"],
                cached_at=parse_rfc3339(payload["cached_at"]),
                expires_at=parse_rfc3339(payload["expires_at"]),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise CacheReadError(source_id, metadata_path, f"malformed record: {e}") from e

    def _remove_metadata(self, metadata_path: str) -> None:
        try:
            os.remove(metadata_path)
        except FileNotFoundError:
            pass

    def lookup(self, source_id: str) -> CacheLookup:
        """
        Returns the cached checkout for `source_id` if it is still valid.

        1.  No metadata file -> miss (not an error).
        2.  Expired -> metadata AND checkout directory are deleted -> miss.
        3.  Checkout directory gone -> metadata is deleted -> miss.

        Raises:
            CacheReadError: metadata exists but cannot be read or parsed.
        """
        metadata_path = self.metadata_path(source_id)

        with tracer.start_as_current_span("cache.lookup") as span:
            span.set_attribute("repo.url", source_id)
            try:
                entry = self._read_entry(source_id, metadata_path)
            except CacheReadError as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR))
                raise

            if entry is None:
                span.set_attribute("cache.hit", False)
                return MISS

            now = self._clock()
            if entry.is_expired(now):
                logger.info(f"⌛ Cache entry expired for {source_id}, removing {entry.repo_path}")
                self._remove_metadata(metadata_path)
                shutil.rmtree(entry.repo_path, ignore_errors=True)
                span.set_attribute("cache.hit", False)
                span.set_attribute("cache.evicted", "expired")
                return MISS

            if not os.path.isdir(entry.repo_path):
                logger.warning(f"⚠️ Cached checkout vanished for {source_id} ({entry.repo_path}), dropping metadata")
                self._remove_metadata(metadata_path)
                span.set_attribute("cache.hit", False)
                span.set_attribute("cache.evicted", "missing_checkout")
                return MISS

            span.set_attribute("cache.hit", True)
            return CacheLookup(path=entry.repo_path, found=True, cached_at=entry.cached_at)

    # ==============================================================================
    #  WRITE PATH
    # ==============================================================================

    def store(self, source_id: str, local_path: str) -> CacheEntry:
        """Records `local_path` as the checkout of `source_id`, replacing any prior entry."""
        now = self._clock()
        entry = CacheEntry(
            url=source_id,
            repo_path=os.path.abspath(local_path),
            cached_at=now,
            expires_at=now + self.ttl,
        )
        payload = {
            "url": entry.url,
            "cached_at": format_rfc3339(entry.cached_at),
            "repo_path": entry.repo_path,
            "expires_at": format_rfc3339(entry.expires_at),
        }

        metadata_path = self.metadata_path(source_id)
        with tracer.start_as_current_span("cache.store") as span:
            span.set_attribute("repo.url", source_id)
            span.set_attribute("repo.path", entry.repo_path)

            os.makedirs(self.root, exist_ok=True)
            tmp_path = metadata_path + ".tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
            os.replace(tmp_path, metadata_path)

        logger.info(f"💾 Cached {source_id} -> {entry.repo_path} (expires {payload['expires_at']})")
        return entry

    def invalidate(self, source_id: str) -> bool:
        """
        Drops the entry for `source_id` together with its checkout directory.

        Unreadable metadata is still removed, along with the deterministic checkout
        path. Returns True if anything was deleted.
        """
        metadata_path = self.metadata_path(source_id)
        removed = False
        repo_paths = {self.checkout_path(source_id)}
        try:
            entry = self._read_entry(source_id, metadata_path)
        except CacheReadError:
            entry = None
            removed = os.path.exists(metadata_path)
        if entry is not None:
            repo_paths.add(entry.repo_path)
            removed = True

        self._remove_metadata(metadata_path)
        for repo_path in repo_paths:
            if os.path.isdir(repo_path):
                shutil.rmtree(repo_path, ignore_errors=True)
                removed = True

        if removed:
            logger.info(f"🧹 Invalidated cache entry for {source_id}")
        return removed

    def prune(self) -> int:
        """
        Explicit sweep applying the `lookup` validity rules to every entry.

        Never scheduled automatically; meant for long-lived hosts or the `cache prune`
        command. Unparsable records, and records whose file name is not the key of their
        `url`, are skipped with a warning rather than deleted, so a corrupted cache
        stays visible to `lookup`.

        Returns:
            int: Number of entries removed.
        """
        removed_count = 0
        if not os.path.isdir(self.root):
            return 0

        with tracer.start_as_current_span("cache.prune") as span:
            for name in sorted(os.listdir(self.root)):
                if not name.endswith(".json"):
                    continue
                metadata_path = os.path.join(self.root, name)
                try:
                    with open(metadata_path, "r", encoding="utf-8") as f:
                        source_id = json.load(f)["url"]
                except (OSError, ValueError, KeyError, TypeError) as e:
                    logger.warning(f"⚠️ [GC] Skipping unreadable cache record {name}: {e}")
                    continue

                if not isinstance(source_id, str) or name != f"{self.key(source_id)}.json":
                    logger.warning(f"⚠️ [GC] Skipping cache record {name}: file name does not match its url")
                    continue

                try:
                    self.lookup(source_id)
                except CacheReadError as e:
                    logger.warning(f"⚠️ [GC] Skipping unreadable cache record {name}: {e}")
                    continue
                if not os.path.exists(metadata_path):
                    removed_count += 1

            span.set_attribute("gc.removed_count", removed_count)

        logger.info(f"🧹 [GC] Pruned {removed_count} stale cache entries from {self.root}")
        return removed_count
