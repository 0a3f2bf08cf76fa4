from .assets import Asset, collect_assets
from .builder import StackBuilder
from .diff import StackDiff, diff, format_diff
from .stack import Stack, parse_template

__all__ = [
    "Asset",
    "Stack",
    "StackBuilder",
    "StackDiff",
    "collect_assets",
    "diff",
    "format_diff",
    "parse_template",
]
