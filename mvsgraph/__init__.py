"""Minimal Version Selection over module registry snapshots."""

__version__ = "1.0.0"

from .diagnostics import Diagnostic, DiagnosticKind
from .models import (
    ArchiveOverride,
    Dependency,
    DependencyTree,
    DependencyTreeNode,
    GitOverride,
    LocalPathOverride,
    Module,
    ModuleMetadata,
    ModuleVersion,
    Registry,
    SingleVersionOverride,
)
from .registry import RegistryCache, build_reverse_dependency_index
from .resolver import DevMode, MVSResolver
from .version_index import VersionIndex, build_maps
