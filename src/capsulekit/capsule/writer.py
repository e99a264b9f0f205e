"""Capsule catalog file writer."""

import logging
import re
from pathlib import Path

import yaml

from ..config import Settings
from .schema import CapsuleDefinition, SourceFile

logger = logging.getLogger(__name__)


def _fence_for(content: str) -> str:
    """Backtick fence longer than any backtick run inside the content."""
    longest = max((len(run) for run in re.findall(r"`+", content)), default=0)
    return "`" * max(3, longest + 1)


def to_frontmatter(definition: CapsuleDefinition) -> dict:
    """Convert a definition's identity, schema, and platform metadata to a YAML-serializable dict."""
    data = {
        "id": definition.id,
        "name": definition.name,
        "description": definition.description,
        "category": definition.category.value,
        "tags": list(definition.tags),
        "version": definition.version,
    }
    if definition.author:
        data["author"] = definition.author
    if definition.deprecated:
        data["deprecated"] = True

    data["props"] = [
        spec.model_dump(by_alias=True, exclude_defaults=True, mode="json")
        for spec in definition.props
    ]

    platforms = {}
    for key, impl in definition.platforms.items():
        entry = {"framework": impl.framework}
        if impl.minimum_version:
            entry["minimumVersion"] = impl.minimum_version
        entry["dependencies"] = list(impl.dependencies)
        if impl.imports:
            entry["imports"] = list(impl.imports)
        platforms[key] = entry
    data["platforms"] = platforms
    return data


def to_markdown(definition: CapsuleDefinition) -> str:
    """Render a definition as markdown with YAML frontmatter.

    Source files become `## <platform>: <filename>` sections holding one
    fenced block each. File content is written with a trailing newline.
    """
    header = yaml.dump(
        to_frontmatter(definition),
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )

    parts = [f"---\n{header.strip()}\n---\n", f"# {definition.name}\n"]
    if definition.description:
        parts.append(f"{definition.description}\n")

    for key, impl in definition.platforms.items():
        for source in impl.files:
            parts.append(_render_file(key, source))

    return "\n".join(parts)


def _render_file(platform: str, source: SourceFile) -> str:
    fence = _fence_for(source.content)
    content = source.content
    if content and not content.endswith("\n"):
        content += "\n"
    return f"## {platform}: {source.name}\n\n{fence}{source.language or ''}\n{content}{fence}\n"


class CapsuleWriter:
    """Writes capsule definitions into the catalog directory."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def path_for(self, definition: CapsuleDefinition) -> Path:
        return self.settings.catalog_dir / definition.category.value / f"{definition.id}.md"

    def write(self, definition: CapsuleDefinition, overwrite: bool = False) -> Path:
        """Write a definition to `<catalog_dir>/<category>/<id>.md`.

        Returns the path to the written file.

        Raises:
            FileExistsError: The file exists and overwrite is False
        """
        path = self.path_for(definition)
        if path.exists() and not overwrite:
            raise FileExistsError(f"Capsule file already exists: {path}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(to_markdown(definition), encoding="utf-8")
        logger.info(f"[WRITER] Wrote capsule {definition.id} to {path}")
        return path
