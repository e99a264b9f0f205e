"""Projects and the lifecycle of the capsule instances they own."""

import logging
import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .capsule.schema import CapsuleInstance
from .capsule.validator import ValidationResult, validate
from .engine.registry import CapsuleRegistry
from .engine.resolver import ProjectArtifact, Resolver

logger = logging.getLogger(__name__)


class InstanceState(str, Enum):
    """Draft instances may hold incomplete or invalid props; valid ones pass the schema."""

    DRAFT = "draft"
    VALID = "valid"


class ProjectStatus(str, Enum):
    DRAFT = "draft"
    BUILDING = "building"
    READY = "ready"
    DEPLOYED = "deployed"
    ERROR = "error"


def check_instance(
    instance: CapsuleInstance, registry: CapsuleRegistry, strict: bool = True
) -> ValidationResult:
    """Validate an instance's props against its capsule's schema.

    An unknown capsule yields an empty result with no violations; callers
    that need to tell the two apart check the registry first.
    """
    definition = registry.find(instance.capsule_id)
    if definition is None:
        return ValidationResult()
    return validate(definition.props, instance.prop_values, strict=strict)


def instance_state(
    instance: CapsuleInstance, registry: CapsuleRegistry, strict: bool = True
) -> InstanceState:
    """Current state of an instance. Recomputed on every call, never cached."""
    if instance.capsule_id not in registry:
        return InstanceState.DRAFT
    if check_instance(instance, registry, strict).valid:
        return InstanceState.VALID
    return InstanceState.DRAFT


class Project(BaseModel):
    """A builder project. Owns its capsule instances exclusively."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.DRAFT
    targets: list[str] = Field(default_factory=lambda: ["web"])
    instances: list[CapsuleInstance] = Field(default_factory=list, alias="capsules")

    def instance(self, instance_id: str) -> Optional[CapsuleInstance]:
        for instance in self.instances:
            if instance.instance_id == instance_id:
                return instance
        return None

    def add_capsule(
        self,
        capsule_id: str,
        props: Optional[dict[str, Any]] = None,
        instance_id: Optional[str] = None,
    ) -> CapsuleInstance:
        """Add a capsule to the project and return the new instance."""
        instance = CapsuleInstance(
            instance_id=instance_id or uuid.uuid4().hex,
            capsule_id=capsule_id,
            project_id=self.id,
            prop_values=dict(props or {}),
        )
        if self.instance(instance.instance_id) is not None:
            raise ValueError(f"Instance id already used in project: {instance.instance_id}")
        self.instances.append(instance)
        logger.debug(f"[PROJECT] Added {capsule_id} as {instance.instance_id} to {self.id}")
        return instance

    def remove_capsule(self, instance_id: str) -> bool:
        """Remove an instance. Returns False if it is not in the project."""
        for index, instance in enumerate(self.instances):
            if instance.instance_id == instance_id:
                del self.instances[index]
                logger.debug(f"[PROJECT] Removed {instance_id} from {self.id}")
                return True
        return False

    def update_props(self, instance_id: str, props: dict[str, Any]) -> CapsuleInstance:
        """Replace an instance's prop values.

        Raises:
            KeyError: No instance with this id in the project
        """
        for index, instance in enumerate(self.instances):
            if instance.instance_id == instance_id:
                updated = instance.with_props(props)
                self.instances[index] = updated
                return updated
        raise KeyError(instance_id)

    def states(self, registry: CapsuleRegistry, strict: bool = True) -> dict[str, InstanceState]:
        """State of every instance, keyed by instance id."""
        return {
            instance.instance_id: instance_state(instance, registry, strict)
            for instance in self.instances
        }

    def resolve(self, resolver: Resolver, platform: str) -> ProjectArtifact:
        return resolver.resolve_project(self.instances, platform)

    def resolve_targets(self, resolver: Resolver) -> dict[str, ProjectArtifact]:
        """Resolve the project for each of its target platforms."""
        return resolver.resolve_targets(self.instances, self.targets)
