import hashlib


def hash_source_id(source_id: str) -> str:
    """128-bit MD5 hex digest used as the cache key of a remote source."""
    return hashlib.md5(source_id.encode("utf-8")).hexdigest()
