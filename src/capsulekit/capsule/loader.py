"""Capsule catalog loading utilities."""

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

import frontmatter
import yaml
from pydantic import ValidationError

from ..errors import CatalogLoadError
from .schema import KNOWN_PLATFORMS, CapsuleDefinition

logger = logging.getLogger(__name__)

BUILTIN_CATALOG = Path(__file__).parent / "builtin"

CATALOG_SUFFIXES = {".md", ".yaml", ".yml"}

# "## ios: Button.swift" opens the payload for one platform file
SECTION_HEADING = re.compile(r"^##\s+([A-Za-z0-9_-]+)\s*:\s*(\S.*?)\s*$")
FENCE = re.compile(r"^(`{3,})\s*([\w+#.-]*)\s*$")


def parse_payload_sections(body: str, platforms: Optional[Iterable[str]] = None) -> list[dict]:
    """Parse the markdown body of a capsule file into source files.

    Each `## <platform>: <filename>` heading is followed by one fenced code
    block holding the file content. Text outside fenced blocks is ignored.

    Args:
        body: Markdown body below the frontmatter
        platforms: Platform keys that open a payload section. Headings with
            any other key (e.g. `## Usage: example`) are prose. None accepts
            every key.

    Returns:
        List of dicts with platform, name, content, and language keys
    """
    accepted = set(platforms) if platforms is not None else None
    sections = []
    current = None
    fence = None
    lines: list[str] = []

    for line in body.split("\n"):
        if fence is not None:
            if line.strip() == fence:
                if current is not None:
                    current["content"] = "\n".join(lines) + "\n" if lines else ""
                    sections.append(current)
                current, fence, lines = None, None, []
            else:
                lines.append(line)
            continue

        heading = SECTION_HEADING.match(line)
        if heading:
            platform = heading.group(1)
            if accepted is None or platform in accepted:
                current = {
                    "platform": platform,
                    "name": heading.group(2),
                    "content": "",
                    "language": None,
                }
            else:
                current = None
            continue

        # Fences are tracked in prose too, so headings inside snippets stay text
        opening = FENCE.match(line)
        if opening:
            fence = opening.group(1)
            if current is not None:
                current["language"] = opening.group(2) or None

    if fence is not None and current is not None:
        raise ValueError(f"unterminated code block for {current['platform']}: {current['name']}")

    return sections


def _read_markdown(path: Path) -> dict:
    post = frontmatter.load(path)
    data = dict(post.metadata)
    if not data.get("id"):
        return {}

    platforms = {key: dict(value or {}) for key, value in (data.get("platforms") or {}).items()}
    # Known platform keys still count, so an undeclared `## ios:` section is an error
    for section in parse_payload_sections(post.content, set(platforms) | set(KNOWN_PLATFORMS)):
        platform = section.pop("platform")
        if platform not in platforms:
            raise ValueError(f"payload for platform '{platform}' has no entry in frontmatter")
        platforms[platform].setdefault("files", []).append(section)
    data["platforms"] = platforms
    return data


def _read_yaml(path: Path) -> dict:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("top level must be a mapping")
    return data


def load_capsule_file(path: Path) -> CapsuleDefinition | None:
    """Load one capsule definition file.

    Returns None for markdown files without an `id` in their frontmatter
    (e.g. a README next to the capsules).

    Raises:
        CatalogLoadError: The file cannot be parsed or fails the schema
    """
    try:
        if path.suffix == ".md":
            data = _read_markdown(path)
        else:
            data = _read_yaml(path)
    except (yaml.YAMLError, ValueError, OSError) as e:
        raise CatalogLoadError(path, str(e)) from e

    if not data:
        logger.debug(f"[LOADER] Skipping {path.name}: no capsule id")
        return None

    try:
        return CapsuleDefinition.model_validate(data)
    except ValidationError as e:
        raise CatalogLoadError(path, str(e)) from e


def load_catalog(directory: Path) -> list[CapsuleDefinition]:
    """Load every capsule file under a directory.

    Args:
        directory: Catalog root, searched recursively

    Returns:
        Definitions ordered by file path. Empty if the directory is missing.

    Raises:
        CatalogLoadError: Any file is malformed. The whole load is aborted.
    """
    if not directory.exists():
        return []

    definitions = []
    for path in sorted(directory.rglob("*")):
        if not path.is_file() or path.suffix not in CATALOG_SUFFIXES:
            continue
        definition = load_capsule_file(path)
        if definition is not None:
            definitions.append(definition)

    logger.info(f"[LOADER] Loaded {len(definitions)} capsule(s) from {directory}")
    return definitions


def load_builtin_catalog() -> list[CapsuleDefinition]:
    """Load the capsules bundled with the package."""
    return load_catalog(BUILTIN_CATALOG)
