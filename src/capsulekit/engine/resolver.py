"""Resolution engine: capsule instance + platform -> source artifact."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..capsule.schema import CapsuleInstance, PropSchema, SourceFile
from ..capsule.validator import validate
from ..errors import (
    CapsuleNotFound,
    DependencyVersionConflict,
    PlatformNotSupported,
    PropValidationError,
    RenderError,
    ResolutionError,
)
from .dependencies import find_conflicts
from .registry import CapsuleRegistry
from .renderer import IdentityRenderer, TemplateRenderer

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


class ResolvedArtifact(BaseModel):
    """Platform-specific output for one capsule instance.

    Recomputed on demand. The instance's prop values stay the source of truth.
    """

    model_config = ConfigDict(frozen=True)

    instance_id: str
    capsule_id: str
    platform: str
    framework: str
    minimum_version: Optional[str] = None
    files: list[SourceFile]
    dependencies: list[str] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    values: dict[str, Any] = Field(default_factory=dict)


class EmptyProjectForPlatform(BaseModel):
    """No instance in the project targets the requested platform."""

    platform: str

    @property
    def message(self) -> str:
        return f"No capsule in the project targets platform '{self.platform}'"


@dataclass
class ProjectArtifact:
    """Aggregated resolution of every instance in a project for one platform."""

    platform: str
    artifacts: list[ResolvedArtifact] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    conflicts: list[DependencyVersionConflict] = field(default_factory=list)
    errors: list[ResolutionError] = field(default_factory=list)
    empty: Optional[EmptyProjectForPlatform] = None

    @property
    def ok(self) -> bool:
        return self.empty is None and not self.errors

    def to_dict(self) -> dict:
        return {
            "platform": self.platform,
            "ok": self.ok,
            "empty": self.empty.message if self.empty else None,
            "artifacts": [a.model_dump() for a in self.artifacts],
            "dependencies": self.dependencies,
            "imports": self.imports,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "errors": [e.to_dict() for e in self.errors],
        }


def map_for_platform(schema: PropSchema, values: dict[str, Any], platform: str) -> dict[str, Any]:
    """Rename normalized values to the keys the platform's code expects."""
    mapped = {}
    for name, value in values.items():
        spec = schema.get(name)
        key = spec.name_for(platform) if spec else name
        mapped[key] = value
    return mapped


class Resolver:
    """Resolves capsule instances against a registry."""

    def __init__(
        self,
        registry: CapsuleRegistry,
        renderer: Optional[TemplateRenderer] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        strict: bool = True,
    ):
        self.registry = registry
        self.renderer = renderer or IdentityRenderer()
        self.max_workers = max(1, max_workers)
        self.strict = strict

    def resolve(self, instance: CapsuleInstance, platform: str) -> ResolvedArtifact:
        """Resolve a single instance for a platform.

        Raises:
            CapsuleNotFound: The instance references an unknown capsule
            PlatformNotSupported: The capsule has no implementation for platform
            PropValidationError: Prop values violate the schema (all violations)
            RenderError: The renderer failed on one of the platform files
        """
        definition = self.registry.find(instance.capsule_id)
        if definition is None:
            raise CapsuleNotFound(instance.capsule_id, instance.instance_id)

        implementation = definition.implementation(platform)
        if implementation is None:
            raise PlatformNotSupported(definition.id, platform, instance.instance_id)

        result = validate(definition.props, instance.prop_values, strict=self.strict)
        if not result.valid:
            raise PropValidationError(definition.id, result.violations, instance.instance_id)

        values = map_for_platform(definition.props, result.values, platform)
        files = []
        for source in implementation.files:
            try:
                content = self.renderer.render(source, values)
            except Exception as e:
                # Renderers are pluggable; keep their failures per-instance
                raise RenderError(
                    definition.id, source.name, f"{type(e).__name__}: {e}", instance.instance_id
                ) from e
            files.append(SourceFile(name=source.name, content=content, language=source.language))

        return ResolvedArtifact(
            instance_id=instance.instance_id,
            capsule_id=definition.id,
            platform=platform,
            framework=implementation.framework,
            minimum_version=implementation.minimum_version,
            files=files,
            dependencies=sorted(set(implementation.dependencies)),
            imports=sorted(set(implementation.imports)),
            values=values,
        )

    def _attempt(
        self, instance: CapsuleInstance, platform: str
    ) -> Union[ResolvedArtifact, ResolutionError]:
        try:
            return self.resolve(instance, platform)
        except ResolutionError as e:
            logger.debug(f"[RESOLVER] {instance.instance_id}: {e}")
            return e

    def resolve_project(
        self, instances: Iterable[CapsuleInstance], platform: str
    ) -> ProjectArtifact:
        """Resolve every instance of a project for one platform.

        Instances resolve concurrently; artifacts and errors keep input order.
        Per-instance failures are collected, never raised.
        """
        instances = list(instances)
        project = ProjectArtifact(platform=platform)

        if instances:
            workers = min(self.max_workers, len(instances))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                outcomes = list(pool.map(lambda i: self._attempt(i, platform), instances))
        else:
            outcomes = []

        targeting = 0
        for outcome in outcomes:
            if isinstance(outcome, ResolvedArtifact):
                project.artifacts.append(outcome)
                targeting += 1
            else:
                project.errors.append(outcome)
                if isinstance(outcome, (PropValidationError, RenderError)):
                    targeting += 1

        project.dependencies = sorted({d for a in project.artifacts for d in a.dependencies})
        project.imports = sorted({i for a in project.artifacts for i in a.imports})
        project.conflicts = find_conflicts(
            (a.capsule_id, a.dependencies) for a in project.artifacts
        )

        if targeting == 0:
            project.empty = EmptyProjectForPlatform(platform=platform)
            logger.info(f"[RESOLVER] {project.empty.message}")
        else:
            logger.info(
                f"[RESOLVER] Resolved {len(project.artifacts)}/{len(instances)} "
                f"instance(s) for {platform}"
            )

        for conflict in project.conflicts:
            logger.warning(f"[RESOLVER] {conflict.message}")

        return project

    def resolve_targets(
        self, instances: Iterable[CapsuleInstance], platforms: Iterable[str]
    ) -> dict[str, ProjectArtifact]:
        """Resolve a project for several platforms, keyed by platform."""
        instances = list(instances)
        return {platform: self.resolve_project(instances, platform) for platform in platforms}
