"""
Built-in Exclusion Rules for File Selection.

This module defines the "Noise Control" policy applied to every scan, before any
user-supplied pattern is consulted. The rules are plain regex patterns, so they go
through the same `Pattern` machinery as user input and are matched against both the
relative path and the base name.

**Categories**:
*   `VCS_AND_OS_PATTERNS`: Version control metadata and OS artifacts.
*   `DEPENDENCY_PATTERNS`: Vendored dependency trees and environment files.
*   `BINARY_EXTENSION_PATTERNS`: Images, video, audio, archives and office documents.
"""

VCS_AND_OS_PATTERNS = [
    r"\.git/",
    r"\.gitignore$",
    r"\.DS_Store$",
]

DEPENDENCY_PATTERNS = [
    r"node_modules/",
    r"\.env$",
]

BINARY_EXTENSION_PATTERNS = [
    r"\.(jpg|jpeg|png|gif|svg|ico|bmp|tiff|webp)$",
    r"\.(mp4|mov|avi|mkv|webm|flv)$",
    r"\.(mp3|wav|flac|aac|ogg)$",
    r"\.(zip|tar|gz|rar|7z|exe|dmg|pkg)$",
    r"\.(pdf|doc|docx|xls|xlsx|ppt|pptx)$",
]

DEFAULT_EXCLUSION_PATTERNS = VCS_AND_OS_PATTERNS + DEPENDENCY_PATTERNS + BINARY_EXTENSION_PATTERNS

# Bytes sampled by the text classifier
TEXT_SAMPLE_SIZE = 512
