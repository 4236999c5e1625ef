"""
Output stage: turns a selected file list into a single text document.

The document starts with a short header and then embeds each file inside a fenced
block, preceded by its path relative to the scanned root:

    # Repository Concatenation
    # Generated on: 2024-01-01 12:00:00
    # Total files: 2

    # File: src/main.go
    ```
    ...
    ```
"""

import datetime
import logging
import os
from typing import Iterable, List, Optional, Sequence, Set

from .models import SourceConfig
from .volume_manager.git_fetcher import extract_repo_name

logger = logging.getLogger(__name__)

OUTPUT_SUBDIR = "repo-concat-output"


def concatenate_files(files: Sequence[str], root: str, now: Optional[datetime.datetime] = None) -> str:
    now = now or datetime.datetime.now()
    parts = [
        "# Repository Concatenation\n",
        f"# Generated on: {now.strftime('%Y-%m-%d %H:%M:%S')}\n",
        f"# Total files: {len(files)}\n\n",
    ]

    for file_path in files:
        rel_path = os.path.relpath(file_path, root).replace(os.sep, "/")
        try:
            # newline="" and surrogateescape keep line endings and undecodable bytes intact
            with open(file_path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
                content = f.read()
        except OSError as e:
            logger.warning(f"Failed to read file {rel_path}: {e}")
            continue

        parts.append(f"# File: {rel_path}\n")
        parts.append("```\n")
        parts.append(content)
        if not content.endswith("\n"):
            parts.append("\n")
        parts.append("```\n\n")

    return "".join(parts)


def generate_output_filename(source: SourceConfig, now: Optional[datetime.datetime] = None) -> str:
    now = now or datetime.datetime.now()
    if source.url:
        name = extract_repo_name(source.url)
    else:
        name = os.path.basename(os.path.normpath(os.path.abspath(source.path)))
    return f"{name}-concat-{now.strftime('%Y%m%d-%H%M%S')}.txt"


def write_output(content: str, output_dir: str, filename: str) -> str:
    target_dir = os.path.join(output_dir, OUTPUT_SUBDIR)
    os.makedirs(target_dir, exist_ok=True)
    output_path = os.path.join(target_dir, filename)
    with open(output_path, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
        f.write(content)
    return output_path


def estimate_tokens(content: str) -> int:
    # ~4 tokens per 3 words
    return len(content.split()) * 4 // 3


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return "just now"
    if seconds < 60:
        value, unit = int(seconds), "second"
    elif seconds < 3600:
        value, unit = int(seconds // 60), "minute"
    else:
        value, unit = int(seconds // 3600), "hour"
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


def _relevant_dirs(root: str, relevant: Iterable[str]) -> Set[str]:
    dirs = {root}
    for file_path in relevant:
        parent = os.path.dirname(file_path)
        while parent.startswith(root) and parent not in dirs:
            dirs.add(parent)
            parent = os.path.dirname(parent)
    return dirs


def render_tree(root: str, max_depth: int = 3, relevant: Optional[Iterable[str]] = None) -> List[str]:
    """
    Indented directory listing for previews, skipping dot-entries.

    When `relevant` (absolute file paths) is given, only those files and the
    directories leading to them are shown. Listing errors below the root are ignored:
    the preview is informational, the scan reports real traversal failures.
    """
    root = os.path.abspath(root)
    relevant_files = {os.path.abspath(p) for p in relevant} if relevant is not None else None
    relevant_dirs = _relevant_dirs(root, relevant_files) if relevant_files is not None else None
    lines: List[str] = []

    def walk(path: str, depth: int) -> None:
        if depth > max_depth:
            return
        try:
            entries = sorted(os.scandir(path), key=lambda e: e.name)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory in preview: {path} ({e})")
            return

        indent = "  " * depth
        for entry in entries:
            if entry.name.startswith("."):
                continue
            if entry.is_dir(follow_symlinks=False):
                if relevant_dirs is not None and entry.path not in relevant_dirs:
                    continue
                lines.append(f"{indent}📁 {entry.name}/")
                if depth < max_depth:
                    walk(entry.path, depth + 1)
            else:
                if relevant_files is not None and entry.path not in relevant_files:
                    continue
                lines.append(f"{indent}📄 {entry.name}")

    walk(root, 0)
    return lines
