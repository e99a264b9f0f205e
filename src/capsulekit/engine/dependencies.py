"""Dependency identifier parsing and cross-capsule conflict detection.

Identifiers are kept as declared. Versions are only read to spot the same
package pinned differently by two capsules; no version resolution happens
here.
"""

from collections import defaultdict
from typing import Iterable, Optional

from ..errors import DependencyVersionConflict


def split_dependency(identifier: str) -> tuple[str, Optional[str]]:
    """Split a declared dependency into (package, version).

    Understands the forms found in capsule data:
        react                                  -> ("react", None)
        react@18.2.0                           -> ("react", "18.2.0")
        @tanstack/react-table@8.10.0           -> ("@tanstack/react-table", "8.10.0")
        androidx.compose.material3:material3:1.1.2
                                               -> ("androidx.compose.material3:material3", "1.1.2")
        https://github.com/airbnb/lottie-ios@4.3.0
                                               -> ("https://github.com/airbnb/lottie-ios", "4.3.0")
    """
    identifier = identifier.strip()

    # Gradle coordinates: group:artifact[:version]
    if "://" not in identifier and identifier.count(":") == 2:
        group, artifact, version = identifier.split(":")
        return f"{group}:{artifact}", version or None

    # npm / SwiftPM style: name@version, with npm scopes starting with @
    at = identifier.rfind("@")
    if at > 0:
        name, version = identifier[:at], identifier[at + 1 :]
        if version:
            return name, version
        return name, None

    return identifier, None


def find_conflicts(
    declared: Iterable[tuple[str, Iterable[str]]],
) -> list[DependencyVersionConflict]:
    """Report packages declared with more than one version.

    Args:
        declared: (capsule_id, dependencies) pairs, in resolution order

    Returns:
        Conflicts sorted by package name. Versions and capsule ids are sorted.
    """
    versions: dict[str, set[str]] = defaultdict(set)
    owners: dict[str, set[str]] = defaultdict(set)

    for capsule_id, dependencies in declared:
        for identifier in dependencies:
            package, version = split_dependency(identifier)
            if version is None:
                continue
            versions[package].add(version)
            owners[package].add(capsule_id)

    return [
        DependencyVersionConflict(
            package=package,
            versions=sorted(versions[package]),
            capsule_ids=sorted(owners[package]),
        )
        for package in sorted(versions)
        if len(versions[package]) > 1
    ]
