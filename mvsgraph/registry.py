"""Registry-wide indexes and the per-snapshot cache."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .models import DependencyTree, Maintainer, Module, ModuleMetadata, ModuleVersion, Registry, module_key
from .resolver import DevMode, MVSResolver
from .version_index import VersionIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionSummary:
    """How far a version trails the latest version of its module."""

    versions_behind: int
    age_summary: Optional[str] = None


def build_reverse_dependency_index(registry: Registry) -> Dict[str, List[ModuleVersion]]:
    """
    Build a reverse dependency index: "name@version" -> dependent ModuleVersions.

    Each edge is keyed by the name and version it declares, so a dependent is
    listed under the version it asked for.
    """
    index: Dict[str, List[ModuleVersion]] = {}

    for module in registry.modules:
        for module_version in module.versions:
            for dep in module_version.dependencies:
                index.setdefault(dep.key, []).append(module_version)

    logger.debug(f"Built reverse dependency index with {len(index)} keys")
    return index


def get_latest_module_version(module: Module) -> Optional[ModuleVersion]:
    """Latest version of a module (versions are stored newest first)."""
    return module.versions[0] if module.versions else None


def get_latest_module_versions(registry: Registry) -> List[ModuleVersion]:
    return [module.versions[0] for module in registry.modules if module.versions]


def get_latest_module_versions_by_name(registry: Registry) -> Dict[str, ModuleVersion]:
    return {module.name: module.versions[0] for module in registry.modules if module.versions}


def create_module_map(registry: Registry) -> Dict[str, Module]:
    """Modules by name."""
    return {module.name: module for module in registry.modules}


def create_module_version_map(module: Module) -> Dict[str, ModuleVersion]:
    """Versions of one module by version string."""
    return {mv.version: mv for mv in module.versions}


def get_yanked_map(metadata: Optional[ModuleMetadata]) -> Dict[str, str]:
    """Copy of the yanked version -> reason table (empty when there is no metadata)."""
    if metadata is None:
        return {}
    return dict(metadata.yanked_versions)


def maintainer_module_versions(registry: Registry, maintainer: Maintainer) -> List[ModuleVersion]:
    """Latest versions of the modules maintained by maintainer, matched on github handle or email."""
    result: List[ModuleVersion] = []

    for module in registry.modules:
        if not module.metadata or not module.versions:
            continue
        for m in module.metadata.maintainers:
            if maintainer.github and maintainer.github == m.github:
                result.append(module.versions[0])
                break
            if maintainer.email and maintainer.email == m.email:
                result.append(module.versions[0])
                break

    return result


def calculate_age_summary(total_days: int) -> str:
    """
    Render a number of days as a short age string.

    Examples:
        29 -> "29d", 45 -> "1.5m", 548 -> "1.5y"
    """
    if total_days >= 365:
        return f"{total_days / 365:.1f}y"
    if total_days >= 30:
        return f"{total_days / 30:.1f}m"
    return f"{total_days}d"


def _parse_commit_date(module_version: ModuleVersion) -> Optional[datetime]:
    if not module_version.commit or not module_version.commit.date:
        return None
    try:
        parsed = datetime.fromisoformat(module_version.commit.date.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Invalid commit date for {module_version.key}: {module_version.commit.date}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def summarize_module_versions(module: Module) -> Dict[str, VersionSummary]:
    """
    Version -> VersionSummary for every published version of a module.

    versions_behind is the position in the newest-first version list; the age
    is measured from each version's commit date to the latest version's.
    """
    summaries: Dict[str, VersionSummary] = {}
    if not module.versions:
        return summaries

    latest_date = _parse_commit_date(module.versions[0])

    for i, module_version in enumerate(module.versions):
        age_summary = None
        if latest_date is not None:
            version_date = _parse_commit_date(module_version)
            if version_date is not None:
                total_days = (latest_date - version_date).days
                age_summary = calculate_age_summary(total_days)

        summaries[module_version.version] = VersionSummary(versions_behind=i, age_summary=age_summary)

    return summaries


def get_version_distances(registry: Registry) -> Dict[str, Dict[str, VersionSummary]]:
    """Module name -> (version -> VersionSummary); modules without versions are omitted."""
    result = {}
    for module in registry.modules:
        if module.versions:
            result[module.name] = summarize_module_versions(module)
    return result


class RegistryCache:
    """
    Caches derived data for one registry snapshot at a time.

    Every entry is tied to the snapshot's commit_sha. A lookup with a different
    commit_sha discards the previous snapshot's data before recomputing.
    """

    def __init__(self):
        self._commit_sha: Optional[str] = None
        self._reverse_index: Optional[Dict[str, List[ModuleVersion]]] = None
        self._resolver: Optional[MVSResolver] = None
        self._version_summaries: Dict[Tuple[str, str], Dict[str, VersionSummary]] = {}
        self._trees: Dict[Tuple[str, str, DevMode, str], Optional[DependencyTree]] = {}

    @property
    def commit_sha(self) -> Optional[str]:
        return self._commit_sha

    def _sync(self, registry: Registry) -> None:
        """Drop everything if registry is a different snapshot than the cached one."""
        if self._commit_sha == registry.commit_sha and self._reverse_index is not None:
            return

        if self._commit_sha is not None:
            logger.info(f"Registry changed ({self._commit_sha} -> {registry.commit_sha}), rebuilding indexes")

        self._commit_sha = registry.commit_sha
        self._reverse_index = build_reverse_dependency_index(registry)
        self._resolver = None
        self._version_summaries = {}
        self._trees = {}

    def reverse_index(self, registry: Registry) -> Dict[str, List[ModuleVersion]]:
        """The cached index itself; do not modify it."""
        self._sync(registry)
        return self._reverse_index

    def direct_dependents(self, registry: Registry, name: str, version: str) -> List[ModuleVersion]:
        """Module versions that declare a direct dependency on name@version (a new list per call)."""
        return list(self.reverse_index(registry).get(module_key(name, version), []))

    def resolver(self, registry: Registry) -> MVSResolver:
        self._sync(registry)
        if self._resolver is None:
            self._resolver = MVSResolver(VersionIndex.from_registry(registry))
        return self._resolver

    def dependency_tree(self, registry: Registry, name: str, version: str, dev_mode=DevMode.EXCLUDE) -> Optional[DependencyTree]:
        """
        Memoized MVSResolver.compute_dependency_tree() for this snapshot.

        The same DependencyTree is handed to every caller asking for the same
        (name, version, dev_mode) on this commit, so it must be treated as
        read-only. Its ``selected`` mapping is already a read-only view.
        """
        resolver = self.resolver(registry)
        dev_mode = DevMode.parse(dev_mode)
        key = (name, version, dev_mode, registry.commit_sha)
        if key not in self._trees:
            self._trees[key] = resolver.compute_dependency_tree(name, version, dev_mode)
        return self._trees[key]

    def version_summary(self, registry: Registry, module: Module) -> Dict[str, VersionSummary]:
        """Memoized summarize_module_versions() keyed by module name and commit."""
        self._sync(registry)
        key = (module.name, registry.commit_sha)
        if key not in self._version_summaries:
            self._version_summaries[key] = summarize_module_versions(module)
        return self._version_summaries[key]
