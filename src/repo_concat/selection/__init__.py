from .classifier import is_text_file as is_text_file
from .patterns import Pattern as Pattern
from .patterns import PatternKind as PatternKind
from .patterns import glob_to_regex as glob_to_regex
from .patterns import parse_pattern as parse_pattern
from .pipeline import FileSelector as FileSelector
from .pipeline import FilterSpec as FilterSpec
from .pipeline import collect as collect
from .pipeline import dry_run as dry_run
from .pipeline import scan as scan
from .selection_filters import (
    DEFAULT_EXCLUSION_PATTERNS as DEFAULT_EXCLUSION_PATTERNS,
)
