"""Lookup tables built from a registry snapshot."""

import logging
from typing import Dict, Optional, Tuple

from .models import ModuleMetadata, ModuleVersion, Registry, module_key

logger = logging.getLogger(__name__)


def build_maps(registry: Registry) -> Tuple[Dict[str, ModuleVersion], Dict[str, ModuleMetadata]]:
    """
    Build the version and metadata lookup maps in a single pass.

    Args:
        registry: The loaded registry snapshot

    Returns:
        (version_by_key, metadata_by_name) where version_by_key maps
        "name@version" -> ModuleVersion and metadata_by_name maps
        module name -> ModuleMetadata
    """
    version_by_key: Dict[str, ModuleVersion] = {}
    metadata_by_name: Dict[str, ModuleMetadata] = {}

    for module in registry.modules:
        if module.metadata is not None:
            metadata_by_name[module.name] = module.metadata

        for module_version in module.versions:
            version_by_key[module_key(module.name, module_version.version)] = module_version

    logger.debug(f"Indexed {len(version_by_key)} module versions across {len(metadata_by_name)} modules")
    return version_by_key, metadata_by_name


class VersionIndex:
    """Read-only view over the maps produced by build_maps()."""

    def __init__(self, version_by_key: Dict[str, ModuleVersion], metadata_by_name: Dict[str, ModuleMetadata]):
        self.version_by_key = version_by_key
        self.metadata_by_name = metadata_by_name

    @classmethod
    def from_registry(cls, registry: Registry) -> 'VersionIndex':
        return cls(*build_maps(registry))

    def get(self, name: str, version: str) -> Optional[ModuleVersion]:
        return self.version_by_key.get(module_key(name, version))

    def metadata_for(self, name: str) -> Optional[ModuleMetadata]:
        return self.metadata_by_name.get(name)

    def __contains__(self, key: str) -> bool:
        return key in self.version_by_key

    def __len__(self) -> int:
        return len(self.version_by_key)
