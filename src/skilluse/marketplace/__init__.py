"""Display helpers shared by the skill commands."""

from skilluse.marketplace.formatting import (
    format_display_path,
    format_repo_display_url,
    format_revision_short,
)

__all__ = [
    "format_display_path",
    "format_repo_display_url",
    "format_revision_short",
]
