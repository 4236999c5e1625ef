import datetime
import os

import pytest


class FakeClock:
    """Manually advanced UTC clock for cache expiry tests."""

    def __init__(self, start=None):
        self.now = start or datetime.datetime(2024, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + datetime.timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_tree(tmp_path):
    """
    Builds a directory tree from a mapping of relative path -> content.

    `str` content is written as UTF-8 text, `bytes` verbatim.
    """

    def _make(files, root=None):
        base = root or (tmp_path / "repo")
        base.mkdir(parents=True, exist_ok=True)
        for rel_path, content in files.items():
            target = base / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content, encoding="utf-8")
        return str(base)

    return _make


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    # Never touch the real system cache from tests
    monkeypatch.setenv("REPO_CONCAT_CACHE_DIR", os.path.join(str(tmp_path), "cache"))
    monkeypatch.delenv("REPO_CONCAT_CACHE_TTL", raising=False)
    monkeypatch.delenv("REPO_CONCAT_LOG_LEVEL", raising=False)
