"""Pydantic models for capsule definitions and instances."""

from enum import Enum
from typing import Any, Iterator, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    field_validator,
    model_validator,
)

from ..errors import MappingWarning


class PropType(str, Enum):
    """Closed set of prop types a capsule schema may declare."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"
    FUNCTION = "function"
    ICON = "icon"
    COLOR = "color"
    SELECT = "select"
    ACTION = "action"
    SLOT = "slot"


# Spellings found in catalog data that map onto the closed set
PROP_TYPE_ALIASES = {
    "enum": PropType.SELECT,
    "function-reference": PropType.FUNCTION,
    "callback": PropType.FUNCTION,
    "icon-reference": PropType.ICON,
    "image": PropType.STRING,
    "size": PropType.STRING,
    "spacing": PropType.STRING,
    "node": PropType.SLOT,
}


class CapsuleCategory(str, Enum):
    UI = "ui"
    LAYOUT = "layout"
    NAVIGATION = "navigation"
    FORMS = "forms"
    INPUT = "input"
    DATA = "data"
    DATA_DISPLAY = "data-display"
    CHARTS = "charts"
    MEDIA = "media"
    FEEDBACK = "feedback"
    OVERLAY = "overlay"
    FEATURE = "feature"
    AUTH = "auth"
    ECOMMERCE = "ecommerce"
    SCREEN = "screen"
    DEVICE = "device"
    COMMUNICATION = "communication"
    UTILITY = "utility"
    MARKETING = "marketing"
    BUSINESS = "business"


KNOWN_PLATFORMS = ("web", "ios", "android", "desktop")

# File extension used when a platform implementation ships a single `code` blob
DEFAULT_EXTENSIONS = {
    "web": "tsx",
    "ios": "swift",
    "android": "kt",
    "desktop": "tsx",
}


def _dedupe(values: list[str]) -> list[str]:
    """Collapse duplicates, keeping first-seen order."""
    return list(dict.fromkeys(values))


def _pascal(identifier: str) -> str:
    parts = "".join(c if c.isalnum() else " " for c in identifier).split()
    return "".join(p[:1].upper() + p[1:] for p in parts) or "Component"


class PropSpec(BaseModel):
    """One configurable property of a capsule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: PropType
    required: bool = False
    default: Any = None
    description: str = ""
    options: Optional[list[Any]] = None
    platform_mapping: dict[str, str] = Field(default_factory=dict, alias="platformMapping")
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            key = value.strip().lower()
            return PROP_TYPE_ALIASES.get(key, key)
        return value

    @model_validator(mode="after")
    def _check_invariants(self) -> "PropSpec":
        if self.required and self.default is not None:
            raise ValueError(f"prop '{self.name}' is required and cannot declare a default")

        if self.type == PropType.SELECT and not self.options:
            raise ValueError(f"prop '{self.name}' is a select and needs at least one option")

        if self.default is not None:
            from .validator import check_value

            problem = check_value(self, self.default)
            if problem is not None:
                raise ValueError(f"default for prop '{self.name}' is invalid: {problem.message}")
        return self

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def name_for(self, platform: str) -> str:
        """Prop key as consumed on the given platform."""
        return self.platform_mapping.get(platform, self.name)


class PropSchema(RootModel[list[PropSpec]]):
    """Ordered list of prop specs.

    Accepts both shapes found in catalog data: a list of spec objects, or a
    mapping of prop name to spec. The mapping keeps its insertion order.
    """

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _coerce_mapping(cls, data: Any) -> Any:
        if data is None:
            return []
        if isinstance(data, dict):
            props = []
            for name, spec in data.items():
                spec = dict(spec or {})
                spec.setdefault("name", name)
                props.append(spec)
            return props
        return data

    @model_validator(mode="after")
    def _check_unique_names(self) -> "PropSchema":
        seen = set()
        for spec in self.root:
            if spec.name in seen:
                raise ValueError(f"duplicate prop name '{spec.name}'")
            seen.add(spec.name)
        return self

    def __iter__(self) -> Iterator[PropSpec]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __contains__(self, name: str) -> bool:
        return any(spec.name == name for spec in self.root)

    def get(self, name: str) -> Optional[PropSpec]:
        for spec in self.root:
            if spec.name == name:
                return spec
        return None

    @property
    def names(self) -> list[str]:
        return [spec.name for spec in self.root]


class SourceFile(BaseModel):
    """A named blob of template payload."""

    model_config = ConfigDict(frozen=True)

    name: str
    content: str
    language: Optional[str] = None


class PlatformImplementation(BaseModel):
    """One platform's concrete artifact for a capsule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    platform: str
    framework: str
    minimum_version: Optional[str] = Field(default=None, alias="minimumVersion")
    dependencies: list[str] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    files: list[SourceFile]

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # iOS data uses minVersion, Android uses an integer minSdk
        for legacy in ("minVersion", "minSdk", "min_version"):
            if legacy in data and data.get("minimumVersion") is None and data.get("minimum_version") is None:
                data["minimum_version"] = data.pop(legacy)
        for key in ("minimumVersion", "minimum_version"):
            # Unquoted YAML versions arrive as numbers
            if isinstance(data.get(key), (int, float)):
                data[key] = str(data[key])
        if "frameworkId" in data and "framework" not in data:
            data["framework"] = data.pop("frameworkId")
        return data

    @field_validator("dependencies", "imports")
    @classmethod
    def _collapse_duplicates(cls, value: list[str]) -> list[str]:
        return _dedupe(value)

    @field_validator("files")
    @classmethod
    def _require_files(cls, value: list[SourceFile]) -> list[SourceFile]:
        if not value:
            raise ValueError("a platform implementation needs at least one source file")
        names = [f.name for f in value]
        if len(set(names)) != len(names):
            raise ValueError("source file names must be unique within a platform")
        return value


class CapsuleDefinition(BaseModel):
    """A reusable, cross-platform UI component descriptor."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(description="Stable identifier, never reused once published")
    name: str
    description: str = ""
    category: CapsuleCategory
    tags: list[str] = Field(default_factory=list)
    version: str = "1.0.0"
    props: PropSchema = Field(default_factory=lambda: PropSchema([]))
    platforms: dict[str, PlatformImplementation]
    author: Optional[str] = None
    deprecated: bool = False

    @model_validator(mode="before")
    @classmethod
    def _normalize_platforms(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "schema" in data and "props" not in data:
            data["props"] = data.pop("schema")
        if isinstance(data.get("version"), (int, float)):
            data["version"] = str(data["version"])

        platforms = data.get("platforms")
        if isinstance(platforms, dict):
            component = _pascal(str(data.get("name") or data.get("id") or ""))
            normalized = {}
            for key, impl in platforms.items():
                if isinstance(impl, dict):
                    impl = _inline_code_to_files(dict(impl), key, component)
                    impl.setdefault("platform", key)
                normalized[key] = impl
            data["platforms"] = normalized
        return data

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("capsule id cannot be empty")
        return value

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return _dedupe(value)

    @model_validator(mode="after")
    def _check_platforms(self) -> "CapsuleDefinition":
        if not self.platforms:
            raise ValueError(f"capsule '{self.id}' must implement at least one platform")
        for key, impl in self.platforms.items():
            if impl.platform != key:
                raise ValueError(
                    f"capsule '{self.id}' lists '{impl.platform}' implementation under key '{key}'"
                )
        return self

    @property
    def supported_platforms(self) -> frozenset[str]:
        return frozenset(self.platforms)

    def implementation(self, platform: str) -> Optional[PlatformImplementation]:
        return self.platforms.get(platform)

    def dangling_mappings(self) -> list[MappingWarning]:
        """platformMapping entries naming a platform this capsule does not implement."""
        warnings = []
        for spec in self.props:
            for platform in spec.platform_mapping:
                if platform not in self.platforms:
                    warnings.append(
                        MappingWarning(capsule_id=self.id, prop=spec.name, platform=platform)
                    )
        return warnings


def _inline_code_to_files(impl: dict, platform: str, component: str) -> dict:
    """Turn a single `code` (and optional `styles`) blob into named files."""
    if impl.get("files") or "code" not in impl:
        return impl

    ext = DEFAULT_EXTENSIONS.get(platform, "txt")
    if platform == "web" and impl.get("typescript") is False:
        ext = "jsx"
    files = [{"name": f"{component}.{ext}", "content": impl.pop("code")}]
    styles = impl.pop("styles", None)
    if styles:
        files.append({"name": f"{component}.css", "content": styles, "language": "css"})
    impl.pop("typescript", None)
    impl["files"] = files
    return impl


class CapsuleInstance(BaseModel):
    """A project-scoped usage of a capsule with concrete prop values."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    instance_id: str = Field(alias="id")
    capsule_id: str = Field(alias="capsuleId")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    prop_values: dict[str, Any] = Field(default_factory=dict, alias="props")

    @model_validator(mode="before")
    @classmethod
    def _accept_type_reference(cls, data: Any) -> Any:
        # REST project records name the capsule under `type`
        if isinstance(data, dict) and "type" in data:
            if "capsuleId" not in data and "capsule_id" not in data:
                data = dict(data)
                data["capsule_id"] = data.pop("type")
        return data

    def with_props(self, values: dict[str, Any]) -> "CapsuleInstance":
        """Return a copy carrying new prop values."""
        return self.model_copy(update={"prop_values": dict(values)})
