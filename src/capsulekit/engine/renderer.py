"""Template renderers turning stored payload into emitted source."""

import re
from abc import ABC, abstractmethod
from typing import Any

from ..capsule.schema import SourceFile


class TemplateRenderer(ABC):
    """Base class for payload renderers.

    The resolver hands every source file of the selected platform, together
    with the platform-adjusted prop values, to a renderer and emits what it
    returns.
    """

    @abstractmethod
    def render(self, file: SourceFile, values: dict[str, Any]) -> str:
        """Render one source file."""
        pass


class IdentityRenderer(TemplateRenderer):
    """Emits payload unchanged."""

    def render(self, file: SourceFile, values: dict[str, Any]) -> str:
        return file.content


class PlaceholderRenderer(TemplateRenderer):
    """Substitutes `{{ prop }}` tokens with prop values.

    Tokens naming a prop without a value are left in place.
    """

    TOKEN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

    def render(self, file: SourceFile, values: dict[str, Any]) -> str:
        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name not in values:
                return match.group(0)
            value = values[name]
            if isinstance(value, bool):
                return "true" if value else "false"
            return str(value)

        return self.TOKEN.sub(substitute, file.content)
