"""Stats command for showing registry snapshot statistics."""

import logging
from typing import Dict

from ..models import Registry

logger = logging.getLogger(__name__)


def collect_stats(registry: Registry) -> Dict[str, int]:
    """Count modules, versions and dependency edges in a registry snapshot."""
    stats = {
        'modules': len(registry.modules),
        'versions': 0,
        'edges': 0,
        'dev_edges': 0,
        'unresolved_edges': 0,
        'override_edges': 0,
        'yanked_versions': 0,
        'modules_without_metadata': 0,
        'unranked_versions': 0,
    }

    for module in registry.modules:
        stats['versions'] += len(module.versions)

        metadata = module.metadata
        if metadata is None:
            stats['modules_without_metadata'] += 1
        else:
            stats['yanked_versions'] += len(metadata.yanked_versions)

        for module_version in module.versions:
            # versions missing from the canonical order fall back to string comparison
            if metadata is None or metadata.position(module_version.version) == -1:
                stats['unranked_versions'] += 1

            for dep in module_version.dependencies:
                stats['edges'] += 1
                if dep.dev:
                    stats['dev_edges'] += 1
                if dep.unresolved:
                    stats['unresolved_edges'] += 1
                if dep.override is not None:
                    stats['override_edges'] += 1

    return stats


def show_stats(registry: Registry) -> None:
    """Print statistics about a registry snapshot."""
    stats = collect_stats(registry)

    print("Registry Statistics:")
    if registry.commit_sha:
        print(f"  Commit: {registry.commit_sha}")
    print(f"  Modules: {stats['modules']}")
    print(f"  Module Versions: {stats['versions']}")
    print(f"  Dependency Edges: {stats['edges']}")
    print(f"    Dev: {stats['dev_edges']}")
    print(f"    Unresolved: {stats['unresolved_edges']}")
    print(f"    With Override: {stats['override_edges']}")
    print(f"  Yanked Versions: {stats['yanked_versions']}")
    if stats['modules_without_metadata'] or stats['unranked_versions']:
        print(f"  Modules Without Metadata: {stats['modules_without_metadata']}")
        print(f"  Versions Missing From Canonical Order: {stats['unranked_versions']}")
