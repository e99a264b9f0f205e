"""capsulekit - capsule catalog and cross-platform resolution engine."""

from .capsule import CapsuleDefinition, CapsuleInstance, PropSchema, PropSpec, PropType, validate
from .engine import CapsuleRegistry, ProjectArtifact, ResolvedArtifact, Resolver, build_registry
from .project import InstanceState, Project

__version__ = "0.1.0"

__all__ = [
    "CapsuleDefinition",
    "CapsuleInstance",
    "CapsuleRegistry",
    "InstanceState",
    "Project",
    "ProjectArtifact",
    "PropSchema",
    "PropSpec",
    "PropType",
    "ResolvedArtifact",
    "Resolver",
    "build_registry",
    "validate",
]
