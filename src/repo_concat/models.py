import datetime
import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class ScanMode(str, enum.Enum):
    """
    Result shape of a scan.

    Both modes share the exact same traversal and matching logic; `COLLECT` only drops
    the excluded records before returning.
    """

    DRY_RUN = "dry_run"
    COLLECT = "collect"


@dataclass(frozen=True)
class FileRecord:
    """
    Single file observed during a traversal.

    Produced fresh on every scan and never persisted. `rel_path` always uses `/`
    separators so patterns behave identically on every platform.
    """

    rel_path: str
    abs_path: str
    size_bytes: int
    modified_at: float
    is_dir: bool = False

    @property
    def name(self) -> str:
        return self.rel_path.rsplit("/", 1)[-1]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScanResult:
    mode: ScanMode
    included: List[FileRecord] = field(default_factory=list)
    excluded: List[FileRecord] = field(default_factory=list)

    @property
    def included_paths(self) -> List[str]:
        return [record.abs_path for record in self.included]

    @property
    def excluded_paths(self) -> List[str]:
        return [record.abs_path for record in self.excluded]

    @property
    def total_size(self) -> int:
        return sum(record.size_bytes for record in self.included)


@dataclass
class CacheEntry:
    """
    Persisted mapping from a remote source to its local checkout.

    **Validity**: an entry is usable iff `now < expires_at` AND `repo_path` still
    exists on disk. The JSON field names are part of the on-disk layout.
    """

    url: str
    repo_path: str
    cached_at: datetime.datetime
    expires_at: datetime.datetime

    def is_expired(self, now: datetime.datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CacheLookup:
    path: Optional[str]
    found: bool
    cached_at: Optional[datetime.datetime] = None


MISS = CacheLookup(path=None, found=False)


@dataclass
class SourceConfig:
    """Where the files come from: exactly one of `url` or `path`."""

    url: Optional[str] = None
    path: Optional[str] = None
    exclusions: List[str] = field(default_factory=list)
    inclusions: List[str] = field(default_factory=list)

    @property
    def is_remote(self) -> bool:
        return bool(self.url)
