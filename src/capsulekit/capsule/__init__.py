"""Capsule schema, validation, loading, and writing."""

from .loader import load_builtin_catalog, load_capsule_file, load_catalog
from .schema import (
    CapsuleCategory,
    CapsuleDefinition,
    CapsuleInstance,
    PlatformImplementation,
    PropSchema,
    PropSpec,
    PropType,
    SourceFile,
)
from .validator import ValidationResult, validate
from .writer import CapsuleWriter

__all__ = [
    "CapsuleCategory",
    "CapsuleDefinition",
    "CapsuleInstance",
    "CapsuleWriter",
    "PlatformImplementation",
    "PropSchema",
    "PropSpec",
    "PropType",
    "SourceFile",
    "ValidationResult",
    "load_builtin_catalog",
    "load_capsule_file",
    "load_catalog",
    "validate",
]
