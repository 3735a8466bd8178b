"""Minimal Version Selection over a registry snapshot."""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from .diagnostics import DiagnosticLog, MISSING_VERSION, UNRANKED_VERSION
from .models import Dependency, DependencyTree, DependencyTreeNode, ModuleVersion, module_key
from .validator import validate
from .version_index import VersionIndex

logger = logging.getLogger(__name__)


class DevMode(str, Enum):
    """How dev dependency edges are treated during resolution."""

    EXCLUDE = "exclude"  # skip every dev edge
    INCLUDE = "include"  # dev and non-dev edges are traversed alike
    ONLY = "only"  # traverse as INCLUDE, then keep only the root's dev children

    @classmethod
    def parse(cls, value) -> 'DevMode':
        """Accept a DevMode, a bool, or one of the CLI spellings."""
        if isinstance(value, DevMode):
            return value
        if value is None or value is False:
            return cls.EXCLUDE
        if value is True:
            return cls.INCLUDE

        aliases = {
            "exclude": cls.EXCLUDE,
            "false": cls.EXCLUDE,
            "include": cls.INCLUDE,
            "true": cls.INCLUDE,
            "only": cls.ONLY,
            "dev-only": cls.ONLY,
        }
        mode = aliases.get(str(value).strip().lower())
        if mode is None:
            raise ValueError(f"Unknown dev mode: {value!r}")
        return mode


@dataclass
class Selection:
    """Outcome of applying the MVS rule to one edge."""

    module_version: Optional[ModuleVersion]
    upgraded: bool = False
    replaces_current: bool = False


def select_version(
    name: str,
    requested: str,
    current: Optional[ModuleVersion],
    index: VersionIndex,
    compare: Callable[[str, str, str], int]
) -> Selection:
    """
    Apply the MVS "highest requested wins" rule to a single edge.

    Args:
        name: Module name of the edge target
        requested: Effective requested version (after single-version override)
        current: Version currently selected for this module, if any
        index: Version lookup
        compare: Canonical comparator, compare(name, v1, v2) -> -1/0/1

    Returns:
        Selection whose module_version is None when the version to select does
        not exist in the index. replaces_current tells the caller to record the
        returned version as the new selection for name.
    """
    if current is None:
        module_version = index.get(name, requested)
        return Selection(module_version, upgraded=False, replaces_current=module_version is not None)

    if compare(name, requested, current.version) > 0:
        module_version = index.get(name, requested)
        if module_version is None:
            return Selection(None)
        return Selection(module_version, upgraded=True, replaces_current=True)

    return Selection(current, upgraded=current.version != requested)


@dataclass
class _Frame:
    """A module version whose dependency edges are being walked."""

    module_version: ModuleVersion
    deps: Iterator[Dependency]
    children: List[DependencyTreeNode]


class MVSResolver:
    """
    Computes MVS dependency trees for module versions of a registry snapshot.

    Resolution walks the graph depth-first from the root, in declaration order:
    - Each edge is resolved against the versions selected so far; a higher
      requested version replaces the current selection for that module name
    - Each "name@version" is expanded at most once; later references are
      emitted as pruned nodes so the walk always terminates
    - The final selection is handed to the validator for diagnostics

    The walk uses an explicit stack, so graph depth is not bounded by the
    interpreter recursion limit.
    """

    def __init__(self, index: VersionIndex):
        self.index = index
        self.unranked_comparisons = 0  # lexical fallbacks since construction

    @classmethod
    def from_registry(cls, registry) -> 'MVSResolver':
        return cls(VersionIndex.from_registry(registry))

    def compute_dependency_tree(self, name: str, version: str, dev_mode=DevMode.EXCLUDE) -> Optional[DependencyTree]:
        """
        Compute the MVS dependency tree rooted at name@version.

        Args:
            name: Root module name
            version: Root module version
            dev_mode: DevMode (or a value accepted by DevMode.parse)

        Returns:
            The DependencyTree, or None if the root is not in the registry
        """
        root = self.index.get(name, version)
        if root is None:
            logger.error(f"Module version not found: {module_key(name, version)}")
            return None

        dev_mode = DevMode.parse(dev_mode)
        logger.info(f"Resolving {root.key} (dev dependencies: {dev_mode.value})")

        log = DiagnosticLog(logger)
        selected: Dict[str, ModuleVersion] = {root.name: root}
        visited: Set[str] = {root.key}

        children, edges = self._build_tree(root, visited, selected, dev_mode, log)
        self._finalize_upgrades(edges, selected)

        log.extend(validate(root, selected, self.index.metadata_by_name))

        if dev_mode is DevMode.ONLY:
            children = [child for child in children if child.dev]

        logger.info(f"Resolved {root.key}: {len(selected)} selected modules, "
                    f"{len(visited)} expanded versions, {len(log)} diagnostics")

        return DependencyTree(
            module_version=root,
            children=children,
            selected=MappingProxyType(dict(selected)),
            diagnostics=log.records
        )

    def compute_selected_versions(self, name: str, version: str, dev_mode=DevMode.EXCLUDE) -> Dict[str, ModuleVersion]:
        """Flat module name -> selected ModuleVersion map for name@version."""
        tree = self.compute_dependency_tree(name, version, dev_mode)
        if tree is None:
            return {}
        return self.flatten(tree.children)

    def flatten(self, nodes: List[DependencyTreeNode], log: Optional[DiagnosticLog] = None) -> Dict[str, ModuleVersion]:
        """Keep, per module name, the highest-ranked version found in the subtrees."""
        if log is None:
            log = DiagnosticLog(logger)

        selected: Dict[str, ModuleVersion] = {}
        stack = list(reversed(nodes))
        while stack:
            node = stack.pop()
            current = selected.get(node.name)
            if current is None or self.compare_versions(node.name, node.version, current.version, log) > 0:
                selected[node.name] = node.module_version
            stack.extend(reversed(node.children))

        return selected

    def compare_versions(self, module_name: str, v1: str, v2: str, log: Optional[DiagnosticLog] = None) -> int:
        """
        Compare two versions of a module by their canonical metadata position.

        Returns -1 if v1 < v2, 0 if equal, 1 if v1 > v2. Versions missing from
        the canonical order are compared as plain strings; each fallback is
        reported and counted in unranked_comparisons.
        """
        if v1 == v2:
            return 0

        metadata = self.index.metadata_for(module_name)
        if metadata is None:
            self._record_unranked(
                log, module_name, v1,
                f"No metadata found for module: {module_name}, falling back to string comparison"
            )
            return -1 if v1 < v2 else 1

        index1 = metadata.position(v1)
        index2 = metadata.position(v2)
        if index1 == -1 or index2 == -1:
            missing = v1 if index1 == -1 else v2
            self._record_unranked(
                log, module_name, missing,
                f"Version not found in metadata for {module_name}: "
                f"v1={v1} (index={index1}), v2={v2} (index={index2})"
            )
            return -1 if v1 < v2 else 1

        if index1 < index2:
            return -1
        if index1 > index2:
            return 1
        return 0

    def _record_unranked(self, log: Optional[DiagnosticLog], module_name: str, version: str, message: str) -> None:
        self.unranked_comparisons += 1
        if log is None:
            logger.warning(message)
        else:
            log.warning(UNRANKED_VERSION, message, module=module_name, version=version)

    def _build_tree(
        self,
        root: ModuleVersion,
        visited: Set[str],
        selected: Dict[str, ModuleVersion],
        dev_mode: DevMode,
        log: DiagnosticLog
    ) -> Tuple[List[DependencyTreeNode], List[Tuple[DependencyTreeNode, str]]]:
        """
        Depth-first walk from root.

        Returns the root's child nodes and every emitted node paired with the
        effective version its edge requested.
        """
        children: List[DependencyTreeNode] = []
        edges: List[Tuple[DependencyTreeNode, str]] = []
        stack = [_Frame(root, iter(root.dependencies), children)]

        while stack:
            frame = stack[-1]
            dep = next(frame.deps, None)
            if dep is None:
                stack.pop()
                continue

            node = self._resolve_edge(frame.module_version, dep, visited, selected, dev_mode, log)
            if node is None:
                continue

            frame.children.append(node)
            edges.append((node, dep.effective_version))
            if not node.pruned:
                target = node.module_version
                visited.add(target.key)
                stack.append(_Frame(target, iter(target.dependencies), node.children))

        return children, edges

    @staticmethod
    def _finalize_upgrades(edges: List[Tuple[DependencyTreeNode, str]], selected: Dict[str, ModuleVersion]) -> None:
        """
        Mark each node upgraded iff the final selection for its module differs
        from what its edge requested.

        During the walk an edge can only be compared with the selection made so
        far, so an early edge that is later superseded would otherwise keep
        upgraded=False and still point at the version it asked for. Such a node
        is moved to the final version and pruned: that version is expanded at
        the edge that introduced it.
        """
        for node, requested in edges:
            final = selected.get(node.name)
            if final is None:
                continue
            node.upgraded = final.version != requested
            if node.upgraded and node.module_version.key != final.key:
                node.module_version = final
                node.pruned = True
                node.children = []

    def _resolve_edge(
        self,
        parent: ModuleVersion,
        dep: Dependency,
        visited: Set[str],
        selected: Dict[str, ModuleVersion],
        dev_mode: DevMode,
        log: DiagnosticLog
    ) -> Optional[DependencyTreeNode]:
        """Turn one dependency edge into a tree node, or None if it is skipped."""
        if dep.unresolved:
            logger.debug(f"Skipping unresolved dependency {dep.key} of {parent.key}")
            return None

        if dep.dev and dev_mode is DevMode.EXCLUDE:
            return None

        requested = dep.effective_version
        if requested != dep.version:
            logger.debug(f"single_version_override: {dep.name} {dep.version} -> {requested}")

        compare = partial(self.compare_versions, log=log)
        selection = select_version(dep.name, requested, selected.get(dep.name), self.index, compare)

        if selection.module_version is None:
            log.warning(
                MISSING_VERSION,
                f"Module version not found: {module_key(dep.name, requested)} (required by {parent.key})",
                module=dep.name, version=requested
            )
            return None

        if selection.replaces_current:
            selected[dep.name] = selection.module_version
            if selection.upgraded:
                logger.debug(f"Upgraded {dep.name} to {requested} (required by {parent.key})")

        target = selection.module_version
        return DependencyTreeNode(
            module_version=target,
            requested_version=dep.version,
            upgraded=selection.upgraded,
            dev=dep.dev,
            pruned=target.key in visited,
            override_type=dep.override_type
        )
