import logging

from .selection_filters import TEXT_SAMPLE_SIZE

logger = logging.getLogger(__name__)


def is_binary(content_sample: bytes) -> bool:
    return b"\0" in content_sample


def is_text_file(path: str, sample_size: int = TEXT_SAMPLE_SIZE) -> bool:
    """
    Null-byte heuristic over the first `sample_size` bytes.

    A file that cannot be opened or read is reported as not-text so that it is
    excluded; a single unreadable file must never abort a tree walk. Empty files are
    text.
    """
    try:
        with open(path, "rb") as f:
            head = f.read(sample_size)
    except OSError as e:
        logger.debug(f"Unreadable file treated as binary: {path} ({e})")
        return False
    return not is_binary(head)
