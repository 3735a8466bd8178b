"""Read-only checks run over a completed MVS selection."""

import logging
from typing import Dict, List, Mapping

from .diagnostics import Diagnostic, DiagnosticLog, YANKED, COMPATIBILITY, DIRECT_MISMATCH
from .models import ModuleMetadata, ModuleVersion

logger = logging.getLogger(__name__)


def check_yanked_versions(
    selected: Mapping[str, ModuleVersion],
    metadata_by_name: Dict[str, ModuleMetadata]
) -> List[Diagnostic]:
    """Warn about every selected version listed in its module's yanked table."""
    log = DiagnosticLog(logger)
    for name, module_version in selected.items():
        metadata = metadata_by_name.get(name)
        if not metadata or not metadata.yanked_versions:
            continue

        reason = metadata.yanked_versions.get(module_version.version)
        if reason is not None:
            log.warning(
                YANKED,
                f"Yanked version detected: {name}@{module_version.version} (reason: {reason})",
                module=name, version=module_version.version
            )
    return log.records


def check_compatibility(selected: Mapping[str, ModuleVersion]) -> List[Diagnostic]:
    """Note the declared build tool compatibility of each selected version."""
    log = DiagnosticLog(logger)
    for module_version in selected.values():
        if module_version.bazel_compatibility:
            log.info(
                COMPATIBILITY,
                f"Bazel compatibility requirements for {module_version.key}: "
                f"{', '.join(module_version.bazel_compatibility)}",
                module=module_version.name, version=module_version.version
            )
    return log.records


def check_direct_dependencies(root: ModuleVersion, selected: Mapping[str, ModuleVersion]) -> List[Diagnostic]:
    """Warn when MVS selected a different version than the root itself declared."""
    log = DiagnosticLog(logger)
    for dep in root.dependencies:
        selected_version = selected.get(dep.name)
        if selected_version and selected_version.version != dep.version:
            log.warning(
                DIRECT_MISMATCH,
                f"Direct dependency mismatch: {dep.name} "
                f"(requested: {dep.version}, selected: {selected_version.version})",
                module=dep.name, version=selected_version.version
            )
    return log.records


def validate(
    root: ModuleVersion,
    selected: Mapping[str, ModuleVersion],
    metadata_by_name: Dict[str, ModuleMetadata]
) -> List[Diagnostic]:
    """Run all checks. Never changes the selection."""
    diagnostics = check_yanked_versions(selected, metadata_by_name)
    diagnostics.extend(check_compatibility(selected))
    diagnostics.extend(check_direct_dependencies(root, selected))
    return diagnostics
