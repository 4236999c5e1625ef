import datetime
import json
import os

import pytest

from repo_concat.errors import CacheReadError
from repo_concat.utils.hashing import hash_source_id
from repo_concat.volume_manager import RepoCache

URL = "https://github.com/acme/widgets"


@pytest.fixture
def cache_root(tmp_path):
    return str(tmp_path / "cache")


@pytest.fixture
def repo_cache(cache_root, clock):
    return RepoCache(root=cache_root, ttl=300, clock=clock)


@pytest.fixture
def checkout(tmp_path):
    path = tmp_path / "checkout"
    path.mkdir()
    (path / "main.go").write_text("package main\n")
    return str(path)


def test_store_then_lookup_hits(repo_cache, checkout, clock):
    repo_cache.store(URL, checkout)

    clock.advance(seconds=299)
    result = repo_cache.lookup(URL)

    assert result.found
    assert result.path == checkout
    assert result.cached_at == datetime.datetime(2024, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


def test_lookup_without_entry_is_miss(repo_cache):
    result = repo_cache.lookup(URL)

    assert not result.found
    assert result.path is None


def test_expired_entry_is_removed_with_checkout(repo_cache, checkout, clock):
    repo_cache.store(URL, checkout)

    clock.advance(seconds=301)
    result = repo_cache.lookup(URL)

    assert not result.found
    assert not os.path.exists(repo_cache.metadata_path(URL))
    assert not os.path.exists(checkout)


def test_entry_expires_exactly_at_ttl(repo_cache, checkout, clock):
    repo_cache.store(URL, checkout)

    clock.advance(seconds=300)

    assert not repo_cache.lookup(URL).found


def test_vanished_checkout_drops_metadata_only(repo_cache, checkout, tmp_path):
    repo_cache.store(URL, checkout)
    sibling = tmp_path / "unrelated"
    sibling.mkdir()
    os.rename(checkout, str(tmp_path / "moved"))

    result = repo_cache.lookup(URL)

    assert not result.found
    assert not os.path.exists(repo_cache.metadata_path(URL))
    assert (tmp_path / "moved" / "main.go").exists()
    assert sibling.exists()


def test_corrupt_metadata_raises_cache_read_error(repo_cache):
    os.makedirs(repo_cache.root)
    with open(repo_cache.metadata_path(URL), "w") as f:
        f.write("{not json")

    with pytest.raises(CacheReadError) as exc_info:
        repo_cache.lookup(URL)

    assert exc_info.value.source_id == URL
    assert exc_info.value.metadata_path == repo_cache.metadata_path(URL)


def test_metadata_missing_fields_raises_cache_read_error(repo_cache):
    os.makedirs(repo_cache.root)
    with open(repo_cache.metadata_path(URL), "w") as f:
        json.dump({"url": URL}, f)

    with pytest.raises(CacheReadError, match="malformed record"):
        repo_cache.lookup(URL)


def test_store_creates_root_and_writes_layout(repo_cache, checkout, cache_root):
    assert not os.path.exists(cache_root)

    repo_cache.store(URL, checkout)

    metadata_path = os.path.join(cache_root, hash_source_id(URL) + ".json")
    assert metadata_path == repo_cache.metadata_path(URL)
    with open(metadata_path) as f:
        payload = json.load(f)
    assert payload == {
        "url": URL,
        "cached_at": "2024-01-01T12:00:00Z",
        "repo_path": checkout,
        "expires_at": "2024-01-01T12:05:00Z",
    }
    assert not os.path.exists(metadata_path + ".tmp")


def test_store_overwrites_previous_entry(repo_cache, checkout, tmp_path, clock):
    repo_cache.store(URL, checkout)
    newer = tmp_path / "newer"
    newer.mkdir()

    clock.advance(seconds=200)
    entry = repo_cache.store(URL, str(newer))
    clock.advance(seconds=200)
    result = repo_cache.lookup(URL)

    assert entry.cached_at == clock() - datetime.timedelta(seconds=200)
    assert result.found
    assert result.path == str(newer)


def test_store_records_absolute_path(repo_cache, checkout, monkeypatch):
    monkeypatch.chdir(os.path.dirname(checkout))

    entry = repo_cache.store(URL, os.path.basename(checkout))

    assert entry.repo_path == checkout


def test_keys_are_md5_of_source(repo_cache):
    assert repo_cache.key(URL) == hash_source_id(URL)
    assert len(repo_cache.key(URL)) == 32
    assert repo_cache.checkout_path(URL) == os.path.join(repo_cache.root, repo_cache.key(URL))
    assert repo_cache.key(URL) != repo_cache.key(URL + ".git")


def test_ttl_accepts_timedelta(cache_root, checkout, clock):
    repo_cache = RepoCache(root=cache_root, ttl=datetime.timedelta(hours=1), clock=clock)
    repo_cache.store(URL, checkout)

    clock.advance(minutes=59)

    assert repo_cache.lookup(URL).found


def test_defaults_come_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("REPO_CONCAT_CACHE_DIR", str(tmp_path / "env-cache"))
    monkeypatch.setenv("REPO_CONCAT_CACHE_TTL", "42")

    repo_cache = RepoCache()

    assert repo_cache.root == str(tmp_path / "env-cache")
    assert repo_cache.ttl == datetime.timedelta(seconds=42)


def test_invalidate_removes_metadata_and_checkout(repo_cache, checkout):
    repo_cache.store(URL, checkout)

    assert repo_cache.invalidate(URL) is True
    assert not os.path.exists(repo_cache.metadata_path(URL))
    assert not os.path.exists(checkout)
    assert repo_cache.invalidate(URL) is False


def test_invalidate_clears_corrupt_metadata(repo_cache):
    os.makedirs(repo_cache.checkout_path(URL))
    with open(repo_cache.metadata_path(URL), "w") as f:
        f.write("garbage")

    assert repo_cache.invalidate(URL) is True
    assert not os.path.exists(repo_cache.metadata_path(URL))
    assert not os.path.exists(repo_cache.checkout_path(URL))


def test_prune_removes_only_stale_entries(repo_cache, tmp_path, clock):
    fresh = tmp_path / "fresh"
    stale = tmp_path / "stale"
    orphan = tmp_path / "orphan"
    for d in (fresh, stale, orphan):
        d.mkdir()

    repo_cache.store("https://example.com/a/stale", str(stale))
    clock.advance(seconds=200)
    repo_cache.store("https://example.com/a/fresh", str(fresh))
    repo_cache.store("https://example.com/a/orphan", str(orphan))
    orphan.rmdir()
    clock.advance(seconds=150)

    removed = repo_cache.prune()

    assert removed == 2
    assert repo_cache.lookup("https://example.com/a/fresh").found
    assert not stale.exists()
    assert sorted(os.listdir(repo_cache.root)) == [hash_source_id("https://example.com/a/fresh") + ".json"]


def test_prune_skips_unreadable_records(repo_cache, checkout, caplog):
    repo_cache.store(URL, checkout)
    broken = os.path.join(repo_cache.root, "deadbeef.json")
    with open(broken, "w") as f:
        f.write("nope")

    removed = repo_cache.prune()

    assert removed == 0
    assert os.path.exists(broken)
    assert "Skipping unreadable cache record deadbeef.json" in caplog.text


def test_prune_on_missing_root_is_noop(repo_cache):
    assert repo_cache.prune() == 0


def test_prune_skips_records_filed_under_another_key(repo_cache, checkout, caplog):
    repo_cache.store(URL, checkout)
    misfiled = os.path.join(repo_cache.root, "0" * 32 + ".json")
    os.rename(repo_cache.metadata_path(URL), misfiled)

    removed = repo_cache.prune()

    assert removed == 0
    assert os.path.exists(misfiled)
    assert "file name does not match its url" in caplog.text
