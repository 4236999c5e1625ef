import logging
import os
import subprocess
from typing import List, Optional, Protocol
from urllib.parse import urlparse

from opentelemetry import trace

from ..errors import FetchError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class Fetcher(Protocol):
    def fetch(self, source_id: str, dest_dir: str) -> str:
        """Materializes `source_id` under `dest_dir` and returns the checkout path."""
        ...


def extract_repo_name(url: str) -> str:
    """
    Checkout directory name for `url`.

    `https://github.com/org/repo.git` -> `repo` (second path segment). URLs with a
    scheme but fewer than two path segments map to "repository"; scp-style remotes
    such as `git@host:org/repo.git` use their last segment.
    """
    parsed = urlparse(url)
    if parsed.scheme and parsed.netloc:
        parts = [p for p in parsed.path.strip("/").split("/") if p]
        if len(parts) >= 2:
            return parts[1].removesuffix(".git")
        return "repository"

    last = url.rstrip("/").split("/")[-1].split(":")[-1].removesuffix(".git")
    return last or "repository"


class GitFetcher:
    """
    Fetch collaborator backed by the `git` CLI.

    Runs `git clone <url> <repo name>` inside `dest_dir`, so the checkout always lands
    in `dest_dir/<repo name>`. Failures are reported immediately; there is no retry.
    """

    def __init__(self, extra_args: Optional[List[str]] = None):
        self.extra_args = list(extra_args or [])

    def _run_git(self, cwd: str, args: List[str]) -> None:
        subprocess.run(["git"] + args, cwd=cwd, check=True, capture_output=True)

    def fetch(self, source_id: str, dest_dir: str) -> str:
        checkout = os.path.join(dest_dir, extract_repo_name(source_id))

        with tracer.start_as_current_span("git.clone") as span:
            span.set_attribute("repo.url", source_id)
            span.set_attribute("repo.path", checkout)
            logger.info(f"📥 Cloning {source_id} into {dest_dir}...")
            try:
                self._run_git(dest_dir, ["clone"] + self.extra_args + [source_id, os.path.basename(checkout)])
            except subprocess.CalledProcessError as e:
                error_msg = e.stderr.decode(errors="replace").strip() if e.stderr else str(e)
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR))
                logger.error(f"Git Operation Failed: {error_msg}")
                raise FetchError(f"git clone exited with status {e.returncode}: {error_msg}") from e
            except OSError as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR))
                raise FetchError(f"unable to run git: {e}") from e

        if not os.path.isdir(checkout):
            raise FetchError(f"git clone did not create the expected directory {checkout}")
        return checkout
