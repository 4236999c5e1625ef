"""
Error taxonomy for repository resolution and file selection.

Every fatal condition raised by the library derives from `RepoConcatError`, so the
CLI boundary can catch a single type and report it. Per-file read problems during
classification are deliberately *not* represented here: they degrade the file to
"excluded" and the scan continues.
"""


class RepoConcatError(Exception):
    """Base class for all fatal repo-concat errors."""


class ConfigurationError(RepoConcatError):
    """No source was configured, or both a local path and a URL were given."""


class PatternError(RepoConcatError):
    """A user-supplied include/exclude pattern failed to compile."""

    def __init__(self, pattern: str, role: str, reason: str):
        self.pattern = pattern
        self.role = role
        super().__init__(f"invalid {role} pattern '{pattern}': {reason}")


class WalkError(RepoConcatError):
    """Directory traversal failed. The scan is aborted without a partial result."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"failed to walk '{path}': {reason}")


class FetchError(RepoConcatError):
    """The remote repository could not be fetched or placed in the cache."""


class CacheReadError(RepoConcatError):
    """Cache metadata exists but cannot be read or parsed."""

    def __init__(self, source_id: str, metadata_path: str, reason: str):
        self.source_id = source_id
        self.metadata_path = metadata_path
        super().__init__(f"unreadable cache metadata for {source_id} ({metadata_path}): {reason}")
