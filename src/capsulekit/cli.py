"""capsulekit CLI."""

import json
import sys
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from .capsule import CapsuleCategory, CapsuleDefinition, CapsuleWriter, validate
from .config import get_settings
from .engine import Resolver, build_registry
from .errors import CapsuleKitError, CatalogLoadError, DuplicateCapsuleId
from .logging_config import setup_colored_logging
from .project import Project


def _load_registry(ctx):
    settings = ctx.obj["settings"]
    try:
        return build_registry(settings)
    except (CatalogLoadError, DuplicateCapsuleId) as e:
        click.echo(f"Error loading catalog: {e}", err=True)
        sys.exit(1)


def _parse_prop(raw: str) -> tuple[str, object]:
    if "=" not in raw:
        raise click.BadParameter(f"expected key=value, got {raw!r}", param_hint="--prop")
    key, value = raw.split("=", 1)
    # YAML scalars: true -> bool, 3 -> int, plain words stay strings
    return key.strip(), yaml.safe_load(value) if value else ""


def _read_data_file(path: Path) -> dict:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise click.BadParameter(f"{path} must contain a mapping")
    return data


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, verbose):
    """capsulekit - cross-platform capsule catalog and resolution engine."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_colored_logging(verbose)
    ctx.obj["settings"] = get_settings()


@cli.command("list")
@click.option("--category", "-c", default=None, help="Only capsules in this category")
@click.option("--tag", "-t", "tags", multiple=True, help="Capsules carrying any of these tags")
@click.option("--platform", "-p", default=None, help="Only capsules implementing this platform")
@click.pass_context
def list_capsules(ctx, category, tags, platform):
    """List catalog capsules."""
    registry = _load_registry(ctx)

    if category:
        capsules = registry.list_by_category(category)
    else:
        capsules = registry.list_all()
    if tags:
        matching = {d.id for d in registry.search(tags)}
        capsules = [d for d in capsules if d.id in matching]
    if platform:
        capsules = [d for d in capsules if platform in d.platforms]

    if not capsules:
        click.echo("No capsules found.")
        return

    for definition in capsules:
        platforms = ", ".join(sorted(definition.platforms))
        click.echo(f"{definition.id:<20} {definition.category.value:<12} {definition.name} [{platforms}]")


@cli.command()
@click.argument("capsule_id")
@click.pass_context
def show(ctx, capsule_id):
    """Show a capsule's schema and platform implementations."""
    registry = _load_registry(ctx)
    definition = registry.find(capsule_id)
    if definition is None:
        click.echo(f"Capsule not found: {capsule_id}", err=True)
        sys.exit(1)

    click.echo(f"{definition.name} ({definition.id}) v{definition.version}")
    click.echo("=" * 40)
    if definition.description:
        click.echo(definition.description)
    click.echo(f"  Category:  {definition.category.value}")
    click.echo(f"  Tags:      {', '.join(definition.tags) or '-'}")
    click.echo("")
    click.echo("Props")
    click.echo("-" * 40)
    for spec in definition.props:
        flags = "required" if spec.required else f"default={spec.default!r}"
        options = f" options={spec.options}" if spec.options else ""
        click.echo(f"  {spec.name:<16} {spec.type.value:<9} {flags}{options}")
    click.echo("")
    click.echo("Platforms")
    click.echo("-" * 40)
    for key, impl in sorted(definition.platforms.items()):
        minimum = f" (min {impl.minimum_version})" if impl.minimum_version else ""
        files = ", ".join(f.name for f in impl.files)
        click.echo(f"  {key:<9} {impl.framework}{minimum}: {files}")
        for dependency in impl.dependencies:
            click.echo(f"            + {dependency}")

    for warning in definition.dangling_mappings():
        click.echo(f"Warning: {warning.message}", err=True)


@cli.command("validate")
@click.argument("capsule_id")
@click.option("--prop", "props", multiple=True, help="Prop value as key=value (repeatable)")
@click.option("--props-file", type=click.Path(exists=True, path_type=Path), help="YAML/JSON file of prop values")
@click.option("--lenient", is_flag=True, help="Ignore props not declared in the schema")
@click.pass_context
def validate_props(ctx, capsule_id, props, props_file, lenient):
    """Validate prop values against a capsule's schema."""
    registry = _load_registry(ctx)
    definition = registry.find(capsule_id)
    if definition is None:
        click.echo(f"Capsule not found: {capsule_id}", err=True)
        sys.exit(1)

    values = _read_data_file(props_file) if props_file else {}
    values.update(_parse_prop(raw) for raw in props)

    result = validate(definition.props, values, strict=not lenient)
    if result.valid:
        click.echo(json.dumps(result.values, indent=2, default=str))
        return

    for violation in result.violations:
        click.echo(f"  {violation.prop}: {violation.message}", err=True)
    sys.exit(1)


@cli.command()
@click.argument("project_file", type=click.Path(exists=True, path_type=Path))
@click.option("--platform", "-p", "platforms", multiple=True, help="Target platform (default: project targets)")
@click.option("--json", "as_json", is_flag=True, help="Print the full artifacts as JSON")
@click.pass_context
def resolve(ctx, project_file, platforms, as_json):
    """Resolve every capsule in a project file for one or more platforms."""
    settings = ctx.obj["settings"]
    registry = _load_registry(ctx)

    try:
        project = Project.model_validate(_read_data_file(project_file))
    except ValidationError as e:
        click.echo(f"Invalid project file: {e}", err=True)
        sys.exit(1)

    resolver = Resolver(registry, max_workers=settings.max_workers, strict=settings.strict_props)
    results = resolver.resolve_targets(project.instances, platforms or project.targets)

    if as_json:
        click.echo(json.dumps({p: r.to_dict() for p, r in results.items()}, indent=2, default=str))
    else:
        for platform, result in results.items():
            click.echo(f"{platform}")
            click.echo("-" * 40)
            if result.empty:
                click.echo(f"  {result.empty.message}")
            for artifact in result.artifacts:
                files = ", ".join(f.name for f in artifact.files)
                click.echo(f"  {artifact.instance_id} ({artifact.capsule_id}): {files}")
            if result.dependencies:
                click.echo(f"  Dependencies: {', '.join(result.dependencies)}")
            for conflict in result.conflicts:
                click.echo(f"  Warning: {conflict.message}")
            for error in result.errors:
                click.echo(f"  Error [{error.instance_id}]: {error}", err=True)
                for violation in getattr(error, "violations", []):
                    click.echo(f"    {violation.prop}: {violation.message}", err=True)
            click.echo("")

    if any(r.errors for r in results.values()):
        sys.exit(1)


@cli.command()
@click.pass_context
def stats(ctx):
    """Show catalog statistics."""
    registry = _load_registry(ctx)
    summary = registry.stats()

    click.echo(f"Capsules: {summary['total']}")
    click.echo("")
    click.echo("By category")
    for category, count in summary["categories"].items():
        click.echo(f"  {category:<16} {count}")
    click.echo("")
    click.echo("By platform")
    for platform, count in summary["by_platform"].items():
        click.echo(f"  {platform:<16} {count}")


@cli.command()
@click.argument("capsule_id")
@click.option("--name", required=True, help="Display name")
@click.option(
    "--category",
    type=click.Choice([c.value for c in CapsuleCategory]),
    default=CapsuleCategory.UI.value,
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite an existing capsule file")
@click.pass_context
def new(ctx, capsule_id, name, category, force):
    """Scaffold a new capsule file in the catalog directory."""
    settings = ctx.obj["settings"]
    component = "".join(part.capitalize() for part in name.split()) or "Component"

    try:
        definition = CapsuleDefinition.model_validate(
            {
                "id": capsule_id,
                "name": name,
                "category": category,
                "props": [{"name": "label", "type": "string", "required": True}],
                "platforms": {
                    "web": {
                        "framework": "react",
                        "dependencies": ["react"],
                        "code": (
                            "import React from 'react'\n\n"
                            f"export function {component}({{ label }}: {{ label: string }}) {{\n"
                            "  return <div>{label}</div>\n"
                            "}\n"
                        ),
                    }
                },
            }
        )
        path = CapsuleWriter(settings).write(definition, overwrite=force)
    except (ValidationError, FileExistsError, CapsuleKitError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Created: {path}")


if __name__ == "__main__":
    cli()
