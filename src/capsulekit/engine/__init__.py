"""Capsule registry and resolution engine."""

from .registry import CapsuleRegistry, build_registry
from .renderer import IdentityRenderer, PlaceholderRenderer, TemplateRenderer
from .resolver import EmptyProjectForPlatform, ProjectArtifact, ResolvedArtifact, Resolver

__all__ = [
    "CapsuleRegistry",
    "EmptyProjectForPlatform",
    "IdentityRenderer",
    "PlaceholderRenderer",
    "ProjectArtifact",
    "ResolvedArtifact",
    "Resolver",
    "TemplateRenderer",
    "build_registry",
]
