"""Minimal ``SKILL.md`` frontmatter reader.

Only flat ``key: value`` lines and ``[a, b]`` lists are understood; anything
richer is kept as the raw string. This is not a YAML parser.
"""

from __future__ import annotations

import re

from skilluse.skills.models import SkillMetadata

FrontmatterValue = str | list[str]

_FRONTMATTER_RE = re.compile(r"^---\n(.*?)\n---", re.DOTALL)


def parse_frontmatter(content: str) -> dict[str, FrontmatterValue]:
    """Extract the leading ``---`` block as a flat mapping; never raises."""
    if not isinstance(content, str):
        return {}
    match = _FRONTMATTER_RE.match(content.replace("\r\n", "\n"))
    if match is None:
        return {}

    result: dict[str, FrontmatterValue] = {}
    for line in match.group(1).split("\n"):
        key, sep, raw_value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if not key:
            continue
        value = raw_value.strip()
        if value.startswith("[") and value.endswith("]"):
            result[key] = [item.strip() for item in value[1:-1].split(",")]
        else:
            result[key] = value
    return result


def _optional_str(value: FrontmatterValue | None) -> str | None:
    if value is None or isinstance(value, list):
        return None
    return value or None


def skill_metadata_from_frontmatter(
    fields: dict[str, FrontmatterValue],
    *,
    repo: str,
    path: str,
    fallback_name: str | None = None,
) -> SkillMetadata | None:
    """Project parsed frontmatter onto :class:`SkillMetadata`.

    Returns ``None`` when neither the frontmatter nor ``fallback_name`` supplies a name.
    """
    name = _optional_str(fields.get("name")) or fallback_name
    if not name:
        return None

    tags_value = fields.get("tags")
    tags = tuple(tags_value) if isinstance(tags_value, list) else None

    return SkillMetadata(
        name=name,
        description=_optional_str(fields.get("description")) or "",
        repo=repo,
        path=path,
        version=_optional_str(fields.get("version")),
        type=_optional_str(fields.get("type")),
        author=_optional_str(fields.get("author")),
        tags=tags,
    )
