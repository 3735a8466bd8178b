"""Loader for registry snapshot JSON files."""

import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .models import (
    ArchiveOverride,
    Dependency,
    GitOverride,
    LocalPathOverride,
    Maintainer,
    Module,
    ModuleCommit,
    ModuleMetadata,
    ModuleVersion,
    Override,
    Registry,
    SingleVersionOverride,
)

logger = logging.getLogger(__name__)


class RegistryFormatError(ValueError):
    """Raised when a registry snapshot does not have the expected shape."""


def _read_content(path: str) -> str:
    """Read a snapshot from a file path, or from stdin when path is '-'."""
    if path == '-':
        logger.info("Reading registry snapshot from stdin")
        return sys.stdin.read()
    logger.info(f"Reading registry snapshot from file: {path}")
    with open(path, 'r') as f:
        return f.read()


def _field(data: Dict[str, Any], camel: str, snake: str, default=None):
    """Look up a field by its JSON (camelCase) or proto (snake_case) name."""
    if camel in data:
        return data[camel]
    return data.get(snake, default)


class RegistryParser:
    """
    Parser for registry snapshots in protobuf JSON form.

    Example:
        {
          "commitSha": "3f2a...",
          "modules": [{
            "name": "rules_go",
            "metadata": {"versions": ["0.49.0", "0.50.0"], "yankedVersions": {"0.49.0": "broken"}},
            "versions": [{
              "version": "0.50.0",
              "deps": [{"name": "bazel_skylib", "version": "1.7.1", "dev": false}],
              "bazelCompatibility": [">=7.0.0"]
            }]
          }]
        }

    Field names are accepted in camelCase and snake_case.
    """

    @staticmethod
    def parse_registry_file(file_path: str) -> Registry:
        content = _read_content(file_path)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise RegistryFormatError(f"Invalid registry JSON in {file_path}: {e}") from e
        return RegistryParser.parse_registry(data)

    @staticmethod
    def parse_registry(data: Any) -> Registry:
        if not isinstance(data, dict):
            raise RegistryFormatError("Registry snapshot must be a JSON object")

        modules = [RegistryParser._parse_module(m) for m in data.get('modules') or []]
        commit_sha = _field(data, 'commitSha', 'commit_sha', '') or ''

        version_count = sum(len(m.versions) for m in modules)
        logger.info(f"Parsed {len(modules)} modules ({version_count} versions) from registry snapshot {commit_sha or '(no commit)'}")
        return Registry(modules=modules, commit_sha=commit_sha)

    @staticmethod
    def _parse_module(data: Dict[str, Any]) -> Module:
        if not isinstance(data, dict) or not data.get('name'):
            raise RegistryFormatError(f"Module entry without a name: {data!r}")

        name = data['name']
        metadata_data = data.get('metadata')
        if metadata_data is not None and not isinstance(metadata_data, dict):
            raise RegistryFormatError(f"Metadata of module {name} is not an object: {metadata_data!r}")
        metadata = RegistryParser._parse_metadata(metadata_data) if metadata_data is not None else None

        versions = []
        for version_data in data.get('versions') or []:
            if not isinstance(version_data, dict):
                raise RegistryFormatError(f"Version entry of module {name} is not an object: {version_data!r}")
            version = version_data.get('version')
            if not version:
                logger.warning(f"Skipping version entry without a version for module {name}")
                continue
            versions.append(RegistryParser._parse_module_version(name, version_data))

        if metadata is None:
            logger.debug(f"Module {name} has no metadata; its versions will be compared as strings")

        return Module(name=name, metadata=metadata, versions=versions)

    @staticmethod
    def _parse_metadata(data: Dict[str, Any]) -> ModuleMetadata:
        maintainers = [
            Maintainer(name=m.get('name', ''), email=m.get('email', ''), github=m.get('github', ''))
            for m in data.get('maintainers') or []
        ]
        return ModuleMetadata(
            versions=list(data.get('versions') or []),
            yanked_versions=dict(_field(data, 'yankedVersions', 'yanked_versions') or {}),
            homepage=data.get('homepage', '') or '',
            maintainers=maintainers,
        )

    @staticmethod
    def _parse_module_version(module_name: str, data: Dict[str, Any]) -> ModuleVersion:
        commit_data = data.get('commit')
        commit = None
        if commit_data and not isinstance(commit_data, dict):
            raise RegistryFormatError(f"Commit of {module_name}@{data['version']} is not an object: {commit_data!r}")
        if commit_data:
            commit = ModuleCommit(
                sha=commit_data.get('sha', ''),
                date=commit_data.get('date', ''),
                message=commit_data.get('message', ''),
            )

        dependencies = [RegistryParser._parse_dependency(d) for d in data.get('deps') or []]

        # versions are indexed under their module, whatever name the record carries
        return ModuleVersion(
            name=module_name,
            version=data['version'],
            dependencies=dependencies,
            bazel_compatibility=list(_field(data, 'bazelCompatibility', 'bazel_compatibility') or []),
            commit=commit,
        )

    @staticmethod
    def _parse_dependency(data: Dict[str, Any]) -> Dependency:
        if not isinstance(data, dict) or not data.get('name'):
            raise RegistryFormatError(f"Dependency entry without a name: {data!r}")

        # overrides appear either nested under "override" or inline on the dependency
        override_data = data.get('override') or data
        if not isinstance(override_data, dict):
            raise RegistryFormatError(f"Override of dependency {data['name']} is not an object: {override_data!r}")
        return Dependency(
            name=data['name'],
            version=data.get('version', '') or '',
            dev=bool(data.get('dev', False)),
            unresolved=bool(data.get('unresolved', False)),
            override=RegistryParser._parse_override(override_data),
        )

    @staticmethod
    def _parse_override(data: Dict[str, Any]) -> Optional[Override]:
        git = _field(data, 'gitOverride', 'git_override')
        if git is not None:
            return GitOverride(remote=git.get('remote', ''), commit=git.get('commit', ''))

        archive = _field(data, 'archiveOverride', 'archive_override')
        if archive is not None:
            urls: List[str] = archive.get('urls') or []
            return ArchiveOverride(
                urls=tuple(urls),
                integrity=archive.get('integrity', ''),
                strip_prefix=_field(archive, 'stripPrefix', 'strip_prefix', ''),
            )

        single = _field(data, 'singleVersionOverride', 'single_version_override')
        if single is not None:
            return SingleVersionOverride(version=single.get('version', '') or '')

        local = _field(data, 'localPathOverride', 'local_path_override')
        if local is not None:
            return LocalPathOverride(path=local.get('path', ''))

        return None
