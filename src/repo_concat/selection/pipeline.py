import logging
import os
import stat
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

from opentelemetry import trace

from ..errors import WalkError
from ..models import FileRecord, ScanMode, ScanResult
from .classifier import is_text_file
from .patterns import Pattern, matches_any, parse_patterns
from .selection_filters import DEFAULT_EXCLUSION_PATTERNS

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class FilterSpec:
    """
    Validated selection rules.

    `exclusions` holds the built-in defaults followed by the user patterns; an empty
    `inclusions` list means "no restriction". Build it with `FilterSpec.build` so
    every pattern is compiled before any traversal starts.
    """

    exclusions: Tuple[Pattern, ...] = field(default_factory=tuple)
    inclusions: Tuple[Pattern, ...] = field(default_factory=tuple)

    @classmethod
    def build(
        cls,
        exclusions: Optional[Sequence[str]] = None,
        inclusions: Optional[Sequence[str]] = None,
        use_defaults: bool = True,
    ) -> "FilterSpec":
        """
        Raises:
            PatternError: on the first pattern that fails to compile.
        """
        defaults = parse_patterns(DEFAULT_EXCLUSION_PATTERNS, "default exclusion") if use_defaults else []
        user_exclusions = parse_patterns(exclusions or [], "exclusion")
        user_inclusions = parse_patterns(inclusions or [], "inclusion")
        return cls(exclusions=tuple(defaults + user_exclusions), inclusions=tuple(user_inclusions))

    def decide(self, abs_path: str, rel_path: str, base_name: str) -> bool:
        """
        Selection decision for a single file.

        Order matters only for cost, never for the outcome:
        1.  **Binary check**: decided by content, independently of the name.
        2.  **Exclusions**: any match rejects (defaults first, then user patterns).
        3.  **Inclusions**: when present, at least one must match.
        """
        if not is_text_file(abs_path):
            return False
        if matches_any(self.exclusions, rel_path, base_name) is not None:
            return False
        if self.inclusions and matches_any(self.inclusions, rel_path, base_name) is None:
            return False
        return True


def _raise_walk_error(error: OSError) -> None:
    raise WalkError(error.filename or "<unknown>", error.strerror or str(error)) from error


class FileSelector:
    """
    Single-pass, depth-first file selection over a directory tree.

    Directories are traversed but never emitted. Entries are visited in sorted order
    so that two scans of the same tree produce identical sequences.

    **Failure model**: any traversal error (unlistable directory, entry that cannot
    be stat'ed such as a broken symlink) aborts the scan with `WalkError`. Files that
    merely cannot be *read* are classified as binary and excluded.
    """

    def __init__(self, root: str, spec: Optional[FilterSpec] = None):
        self.root = os.path.abspath(root)
        self.spec = spec or FilterSpec.build()

    def _iter_files(self) -> Iterator[FileRecord]:
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_raise_walk_error):
            dirnames.sort()
            for filename in sorted(filenames):
                full_path = os.path.join(dirpath, filename)
                try:
                    st = os.stat(full_path)
                except OSError as e:
                    raise WalkError(full_path, e.strerror or str(e)) from e

                if not stat.S_ISREG(st.st_mode):
                    continue

                rel_path = os.path.relpath(full_path, self.root).replace(os.sep, "/")
                yield FileRecord(
                    rel_path=rel_path,
                    abs_path=full_path,
                    size_bytes=st.st_size,
                    modified_at=st.st_mtime,
                )

    def classify(self) -> Iterator[Tuple[FileRecord, bool]]:
        for record in self._iter_files():
            yield record, self.spec.decide(record.abs_path, record.rel_path, record.name)

    def scan(self, mode: ScanMode = ScanMode.DRY_RUN) -> ScanResult:
        result = ScanResult(mode=mode)

        with tracer.start_as_current_span("selection.scan") as span:
            span.set_attribute("scan.root", self.root)
            span.set_attribute("scan.mode", mode.value)
            try:
                for record, selected in self.classify():
                    if selected:
                        result.included.append(record)
                    elif mode is ScanMode.DRY_RUN:
                        result.excluded.append(record)
            except WalkError as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR))
                logger.error(f"Scan aborted: {e}")
                raise

            span.set_attribute("scan.included", len(result.included))
            span.set_attribute("scan.excluded", len(result.excluded))

        logger.info(f"🔍 Scanned {self.root}: {len(result.included)} included, {len(result.excluded)} excluded")
        return result


def scan(root: str, spec: Optional[FilterSpec] = None, mode: ScanMode = ScanMode.DRY_RUN) -> ScanResult:
    return FileSelector(root, spec).scan(mode)


def dry_run(root: str, spec: Optional[FilterSpec] = None) -> ScanResult:
    return scan(root, spec, ScanMode.DRY_RUN)


def collect(root: str, spec: Optional[FilterSpec] = None) -> List[str]:
    """Absolute paths of the selected files, in walk order."""
    return scan(root, spec, ScanMode.COLLECT).included_paths
