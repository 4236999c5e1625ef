from .errors import (
    CacheReadError,
    ConfigurationError,
    FetchError,
    PatternError,
    RepoConcatError,
    WalkError,
)
from .models import CacheEntry, CacheLookup, FileRecord, ScanMode, ScanResult, SourceConfig
from .resolver import RepositoryResolver
from .selection import FileSelector, FilterSpec, collect, dry_run, scan
from .volume_manager import GitFetcher, RepoCache

__all__ = [
    "FileSelector", "FilterSpec",
    "scan", "dry_run", "collect",
    "RepoCache", "GitFetcher", "RepositoryResolver",
    "FileRecord", "ScanMode", "ScanResult", "CacheEntry", "CacheLookup", "SourceConfig",
    "RepoConcatError", "ConfigurationError", "PatternError", "WalkError", "FetchError", "CacheReadError",
]
