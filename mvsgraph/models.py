"""Core data models for mvsgraph."""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Mapping


def module_key(name: str, version: str) -> str:
    """Return the "name@version" key used by every lookup table."""
    return f"{name}@{version}"


@dataclass(frozen=True)
class Override:
    """Base class for the override attached to a dependency edge."""

    override_type = ""


@dataclass(frozen=True)
class GitOverride(Override):
    """Module is fetched from a git repository."""

    remote: str = ""
    commit: str = ""

    override_type = "git"


@dataclass(frozen=True)
class ArchiveOverride(Override):
    """Module is fetched from an archive URL."""

    urls: tuple = ()
    integrity: str = ""
    strip_prefix: str = ""

    override_type = "archive"


@dataclass(frozen=True)
class SingleVersionOverride(Override):
    """Pins the module to a single version, superseding the requested one."""

    version: str = ""

    override_type = "single_version"


@dataclass(frozen=True)
class LocalPathOverride(Override):
    """Module is taken from a path on the local filesystem."""

    path: str = ""

    override_type = "local_path"


@dataclass
class Dependency:
    """A dependency edge declared by a module version."""

    name: str
    version: str  # requested version
    dev: bool = False  # test/build-only dependency
    unresolved: bool = False  # registry could not locate the target
    override: Optional[Override] = None

    @property
    def key(self) -> str:
        return module_key(self.name, self.version)

    @property
    def effective_version(self) -> str:
        """Version used for selection, after applying a single-version override."""
        if isinstance(self.override, SingleVersionOverride) and self.override.version:
            return self.override.version
        return self.version

    @property
    def override_type(self) -> str:
        return self.override.override_type if self.override else ""


@dataclass
class ModuleCommit:
    """Registry commit that published a module version."""

    sha: str = ""
    date: str = ""  # ISO-8601
    message: str = ""


@dataclass
class ModuleVersion:
    """One published version of a module."""

    name: str
    version: str
    dependencies: List[Dependency] = field(default_factory=list)
    bazel_compatibility: List[str] = field(default_factory=list)
    commit: Optional[ModuleCommit] = None

    @property
    def key(self) -> str:
        return module_key(self.name, self.version)

    def __str__(self) -> str:
        return self.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ModuleVersion):
            return False
        return self.key == other.key


@dataclass
class Maintainer:
    """A module maintainer as listed in the registry metadata."""

    name: str = ""
    email: str = ""
    github: str = ""


@dataclass
class ModuleMetadata:
    """Per-module metadata: canonical version order and yanked versions."""

    versions: List[str] = field(default_factory=list)  # oldest -> newest
    yanked_versions: Dict[str, str] = field(default_factory=dict)  # version -> reason
    homepage: str = ""
    maintainers: List[Maintainer] = field(default_factory=list)

    def __post_init__(self):
        self._positions: Dict[str, int] = {}
        for index, version in enumerate(self.versions):
            # first occurrence wins, matching a linear index lookup
            self._positions.setdefault(version, index)

    def position(self, version: str) -> int:
        """Index of version in the canonical ordering, or -1 if absent."""
        return self._positions.get(version, -1)


@dataclass
class Module:
    """A registry module and all of its published versions (newest first)."""

    name: str
    metadata: Optional[ModuleMetadata] = None
    versions: List[ModuleVersion] = field(default_factory=list)


@dataclass
class Registry:
    """An immutable, already-loaded registry snapshot."""

    modules: List[Module] = field(default_factory=list)
    commit_sha: str = ""  # snapshot content identifier


@dataclass
class DependencyTreeNode:
    """A resolved dependency edge in the MVS tree."""

    module_version: ModuleVersion
    requested_version: str
    upgraded: bool = False
    dev: bool = False
    pruned: bool = False  # already expanded elsewhere; children omitted
    override_type: str = ""
    children: List['DependencyTreeNode'] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.module_version.name

    @property
    def version(self) -> str:
        return self.module_version.version

    def iter_nodes(self):
        """Yield this node and all descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass
class DependencyTree:
    """Result of an MVS resolution rooted at a single module version."""

    module_version: ModuleVersion
    children: List[DependencyTreeNode] = field(default_factory=list)
    selected: Mapping[str, ModuleVersion] = field(default_factory=dict, compare=False)
    diagnostics: list = field(default_factory=list, compare=False)

    def iter_nodes(self):
        """Yield every node of the tree in pre-order (the root is not a node)."""
        for child in self.children:
            yield from child.iter_nodes()
