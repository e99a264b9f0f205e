"""Client for the capsule builder REST service."""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from .capsule.schema import CapsuleDefinition, CapsuleInstance
from .config import Settings
from .engine.registry import CapsuleRegistry
from .errors import APIError, CatalogLoadError, MappingWarning
from .project import Project

logger = logging.getLogger(__name__)


class CapsuleAPIClient:
    """Reads and writes projects, capsule instances, and catalog records over HTTP."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.base_url = settings.api_url.rstrip("/")
        self.timeout = settings.api_timeout
        self.headers = {"Content-Type": "application/json"}
        if settings.api_key:
            self.headers["Authorization"] = f"Bearer {settings.api_key}"

    async def _request(self, method: str, endpoint: str, body: Optional[dict] = None) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.request(
                method,
                f"{self.base_url}{endpoint}",
                headers=self.headers,
                json=body,
            )

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}

        if resp.status_code >= 400:
            error = data.get("error") if isinstance(data, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            logger.error(f"[CLIENT] {method} {endpoint} failed with {resp.status_code}")
            raise APIError(message or "API request failed", status_code=resp.status_code)
        return data

    # Projects

    async def get_projects(self) -> list[Project]:
        data = await self._request("GET", "/projects")
        return [Project.model_validate(p) for p in data.get("projects", [])]

    async def get_project(self, project_id: str) -> Project:
        data = await self._request("GET", f"/projects/{project_id}")
        return Project.model_validate(data["project"])

    async def create_project(
        self, name: str, description: str = "", template: Optional[str] = None
    ) -> Project:
        body: dict[str, Any] = {"name": name, "description": description}
        if template:
            body["template"] = template
        data = await self._request("POST", "/projects", body)
        return Project.model_validate(data["project"])

    async def update_project(self, project_id: str, changes: dict[str, Any]) -> Project:
        """PUT a partial project record. Returns the stored project."""
        data = await self._request("PUT", f"/projects/{project_id}", changes)
        return Project.model_validate(data["project"])

    async def delete_project(self, project_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}")

    # Capsule instances

    async def add_capsule(
        self, project_id: str, capsule_id: str, props: Optional[dict[str, Any]] = None
    ) -> CapsuleInstance:
        """POST a new capsule instance to a project."""
        data = await self._request(
            "POST",
            f"/projects/{project_id}/capsules",
            {"type": capsule_id, "props": props or {}},
        )
        record = dict(data["capsule"])
        record.setdefault("projectId", project_id)
        return CapsuleInstance.model_validate(record)

    async def remove_capsule(self, project_id: str, instance_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}/capsules/{instance_id}")

    # Export

    async def export_project(self, project_id: str, request: dict) -> dict:
        return await self._request("POST", f"/projects/{project_id}/export", request)

    async def export_native(self, project_id: str, request: dict) -> dict:
        return await self._request("POST", f"/projects/{project_id}/export-native", request)

    # Catalog

    async def get_capsule_catalog(self) -> list[CapsuleDefinition]:
        """Fetch every capsule definition the service publishes.

        Raises:
            CatalogLoadError: A catalog record does not parse. Nothing is returned.
        """
        data = await self._request("GET", "/capsules")
        definitions = []
        for record in data.get("capsules", []):
            try:
                definitions.append(CapsuleDefinition.model_validate(record))
            except ValidationError as e:
                raise CatalogLoadError(f"{self.base_url}/capsules", str(e)) from e
        return definitions

    async def get_capsule(self, capsule_id: str) -> CapsuleDefinition:
        data = await self._request("GET", f"/capsules/{capsule_id}")
        try:
            return CapsuleDefinition.model_validate(data["capsule"])
        except ValidationError as e:
            raise CatalogLoadError(f"{self.base_url}/capsules/{capsule_id}", str(e)) from e

    async def sync_catalog(self, registry: CapsuleRegistry) -> list[MappingWarning]:
        """Fetch the remote catalog and register it in one atomic batch."""
        definitions = await self.get_capsule_catalog()
        logger.info(f"[CLIENT] Fetched {len(definitions)} capsule(s) from {self.base_url}")
        return registry.register_all(definitions)
