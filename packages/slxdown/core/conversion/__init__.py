"""Per-file and batch conversion."""

from slxdown.core.conversion.models import ConversionOutcome
from slxdown.core.conversion.orchestrator import (
    ConversionError,
    TraversalError,
    convert_one,
    convert_tree,
    is_container,
    iter_containers,
    iter_convert_tree,
)
from slxdown.core.conversion.scratch import scratch_dir_for, scratch_directory

__all__ = [
    "ConversionError",
    "ConversionOutcome",
    "TraversalError",
    "convert_one",
    "convert_tree",
    "is_container",
    "iter_containers",
    "iter_convert_tree",
    "scratch_dir_for",
    "scratch_directory",
]
