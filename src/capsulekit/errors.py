"""Error taxonomy for capsule validation, lookup, and resolution."""

from typing import Any, Optional

from pydantic import BaseModel, Field


def _describe(value: Any) -> str:
    """Short type name used in mismatch messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


# -- Prop violations (schema-validation class, always recoverable) --


class PropViolation(BaseModel):
    """A single schema violation attributable to one prop."""

    code: str
    prop: str
    message: str

    def to_dict(self) -> dict:
        return self.model_dump()


class MissingRequiredProp(PropViolation):
    code: str = "missing_required_prop"

    @classmethod
    def for_prop(cls, name: str) -> "MissingRequiredProp":
        return cls(prop=name, message=f"Required prop '{name}' is missing")


class UnknownProp(PropViolation):
    code: str = "unknown_prop"

    @classmethod
    def for_prop(cls, name: str) -> "UnknownProp":
        return cls(prop=name, message=f"Prop '{name}' is not declared in the schema")


class TypeMismatch(PropViolation):
    code: str = "type_mismatch"
    expected: str
    actual: str

    @classmethod
    def for_value(
        cls, name: str, expected: str, value: Any, detail: Optional[str] = None
    ) -> "TypeMismatch":
        actual = _describe(value)
        message = f"Prop '{name}' expects {expected}, got {actual}"
        if detail:
            message = f"{message} ({detail})"
        return cls(prop=name, expected=expected, actual=actual, message=message)


class InvalidOption(PropViolation):
    code: str = "invalid_option"
    value: Any = None
    options: list[Any] = Field(default_factory=list)

    @classmethod
    def for_value(cls, name: str, value: Any, options: list[Any]) -> "InvalidOption":
        allowed = ", ".join(str(o) for o in options)
        return cls(
            prop=name,
            value=value,
            options=list(options),
            message=f"Prop '{name}' has value {value!r}; allowed: {allowed}",
        )


# -- Advisory warnings --


class DependencyVersionConflict(BaseModel):
    """Same package declared with different versions across capsules.

    Never blocks resolution; the export pipeline decides what to do.
    """

    package: str
    versions: list[str]
    capsule_ids: list[str]

    @property
    def message(self) -> str:
        return (
            f"Package '{self.package}' declared with conflicting versions "
            f"{', '.join(self.versions)} by {', '.join(self.capsule_ids)}"
        )

    def to_dict(self) -> dict:
        return {"code": "dependency_version_conflict", "message": self.message, **self.model_dump()}


class MappingWarning(BaseModel):
    """A platformMapping entry naming a platform the capsule does not implement."""

    capsule_id: str
    prop: str
    platform: str

    @property
    def message(self) -> str:
        return (
            f"Capsule '{self.capsule_id}' maps prop '{self.prop}' for platform "
            f"'{self.platform}' which it does not implement"
        )


# -- Exceptions --


class CapsuleKitError(Exception):
    """Base class for all capsulekit errors."""

    code = "capsulekit_error"

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self)}


class ResolutionError(CapsuleKitError):
    """Per-instance failure. Collected, never fatal to a project batch."""

    code = "resolution_error"

    def __init__(self, message: str, instance_id: Optional[str] = None):
        super().__init__(message)
        self.instance_id = instance_id

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self), "instance_id": self.instance_id}


class CapsuleNotFound(ResolutionError):
    code = "capsule_not_found"

    def __init__(self, capsule_id: str, instance_id: Optional[str] = None):
        super().__init__(f"Capsule '{capsule_id}' is not registered", instance_id)
        self.capsule_id = capsule_id


class PlatformNotSupported(ResolutionError):
    code = "platform_not_supported"

    def __init__(self, capsule_id: str, platform: str, instance_id: Optional[str] = None):
        super().__init__(
            f"Capsule '{capsule_id}' has no implementation for platform '{platform}'",
            instance_id,
        )
        self.capsule_id = capsule_id
        self.platform = platform


class PropValidationError(ResolutionError):
    """Prop values failed the schema. Carries every violation."""

    code = "validation_error"

    def __init__(
        self,
        capsule_id: str,
        violations: list[PropViolation],
        instance_id: Optional[str] = None,
    ):
        super().__init__(
            f"Capsule '{capsule_id}' has {len(violations)} invalid prop(s)", instance_id
        )
        self.capsule_id = capsule_id
        self.violations = list(violations)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["violations"] = [v.to_dict() for v in self.violations]
        return data


class RenderError(ResolutionError):
    """The template renderer failed on one of the capsule's source files."""

    code = "render_error"

    def __init__(
        self,
        capsule_id: str,
        file_name: str,
        reason: str,
        instance_id: Optional[str] = None,
    ):
        super().__init__(
            f"Capsule '{capsule_id}' failed to render {file_name}: {reason}", instance_id
        )
        self.capsule_id = capsule_id
        self.file_name = file_name


class DuplicateCapsuleId(CapsuleKitError):
    """A different definition is already registered under this id."""

    code = "duplicate_capsule_id"

    def __init__(self, capsule_id: str):
        super().__init__(f"Capsule id '{capsule_id}' is already registered with a different definition")
        self.capsule_id = capsule_id


class CatalogLoadError(CapsuleKitError):
    code = "catalog_load_error"

    def __init__(self, path, reason: str):
        super().__init__(f"Failed to load capsule file {path}: {reason}")
        self.path = path
        self.reason = reason


class APIError(CapsuleKitError):
    """Non-success response from the capsule REST service."""

    code = "api_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
