"""Shared pytest fixtures for capsulekit tests."""

from pathlib import Path

import pytest

from capsulekit.capsule.schema import CapsuleDefinition, CapsuleInstance, PropSchema
from capsulekit.config import Settings
from capsulekit.engine.registry import CapsuleRegistry
from capsulekit.engine.resolver import Resolver


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    """Create an empty catalog directory."""
    catalog = tmp_path / "capsules"
    catalog.mkdir()
    return catalog


@pytest.fixture
def settings(catalog_dir: Path) -> Settings:
    """Create settings pointing at a temporary catalog."""
    return Settings(catalog_dir=catalog_dir, include_builtin=False, max_workers=4)


@pytest.fixture
def title_size_schema() -> PropSchema:
    """Schema with one required string and one defaulted select."""
    return PropSchema.model_validate(
        [
            {"name": "title", "type": "string", "required": True},
            {"name": "size", "type": "select", "default": "md", "options": ["sm", "md", "lg"]},
        ]
    )


@pytest.fixture
def button_definition() -> CapsuleDefinition:
    """Button capsule supporting web and ios only."""
    return CapsuleDefinition.model_validate(
        {
            "id": "button",
            "name": "Button",
            "description": "Interactive button",
            "category": "ui",
            "tags": ["interactive", "cta"],
            "version": "1.0.0",
            "props": [
                {"name": "text", "type": "string", "required": True},
                {
                    "name": "variant",
                    "type": "select",
                    "default": "primary",
                    "options": ["primary", "secondary"],
                },
                {
                    "name": "icon",
                    "type": "icon",
                    "platformMapping": {"ios": "systemImage"},
                },
                {"name": "onPress", "type": "action", "required": True},
            ],
            "platforms": {
                "web": {
                    "framework": "react",
                    "dependencies": ["react@18.2.0", "lucide-react", "react@18.2.0"],
                    "files": [
                        {"name": "Button.tsx", "content": "export function Button() {}\n", "language": "tsx"},
                        {"name": "Button.css", "content": ".button { color: red; }\n", "language": "css"},
                    ],
                },
                "ios": {
                    "framework": "swiftui",
                    "minVersion": "15.0",
                    "imports": ["import SwiftUI"],
                    "files": [{"name": "Button.swift", "content": "struct CapsuleButton: View {}\n"}],
                },
            },
        }
    )


@pytest.fixture
def card_definition() -> CapsuleDefinition:
    """Card capsule for web only, pinning a different react version."""
    return CapsuleDefinition.model_validate(
        {
            "id": "card",
            "name": "Card",
            "category": "layout",
            "tags": ["container", "surface"],
            "props": [{"name": "elevated", "type": "boolean", "default": False}],
            "platforms": {
                "web": {
                    "framework": "react",
                    "dependencies": ["react@18.3.1", "clsx"],
                    "code": "export function Card() {}\n",
                },
            },
        }
    )


@pytest.fixture
def registry(button_definition, card_definition) -> CapsuleRegistry:
    """Registry holding the button and card capsules."""
    return CapsuleRegistry([button_definition, card_definition])


@pytest.fixture
def resolver(registry) -> Resolver:
    return Resolver(registry, max_workers=4)


@pytest.fixture
def button_instance() -> CapsuleInstance:
    """Valid button instance."""
    return CapsuleInstance(
        instance_id="inst-1",
        capsule_id="button",
        project_id="proj-1",
        prop_values={"text": "Save", "icon": "star", "onPress": "handleSave"},
    )
