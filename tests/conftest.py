"""Shared registry builders for the mvsgraph tests."""

from collections import OrderedDict

import pytest

from mvsgraph.models import Dependency, Module, ModuleMetadata, ModuleVersion, Registry


def mv(name, version, *deps, compat=None, commit=None):
    """Build a ModuleVersion with the given dependency edges."""
    return ModuleVersion(
        name=name,
        version=version,
        dependencies=list(deps),
        bazel_compatibility=list(compat or []),
        commit=commit,
    )


def dep(name, version, dev=False, unresolved=False, override=None):
    return Dependency(name=name, version=version, dev=dev, unresolved=unresolved, override=override)


def make_registry(*module_versions, order=None, yanked=None, no_metadata=(), commit_sha="commit-1"):
    """
    Group module versions into modules.

    Versions are given oldest first; that order becomes the canonical metadata
    order unless overridden through ``order``. Module.versions is stored
    newest first, as in a real registry.
    """
    order = order or {}
    yanked = yanked or {}

    grouped = OrderedDict()
    for module_version in module_versions:
        grouped.setdefault(module_version.name, []).append(module_version)

    modules = []
    for name, versions in grouped.items():
        metadata = None
        if name not in no_metadata:
            metadata = ModuleMetadata(
                versions=list(order.get(name, [v.version for v in versions])),
                yanked_versions=dict(yanked.get(name, {})),
            )
        modules.append(Module(name=name, metadata=metadata, versions=list(reversed(versions))))

    return Registry(modules=modules, commit_sha=commit_sha)


@pytest.fixture
def upgrade_registry():
    """R depends on B@1.0 and C@1.0; C@1.0 depends on B@2.0."""
    return make_registry(
        mv("R", "1", dep("B", "1.0"), dep("C", "1.0")),
        mv("B", "1.0"),
        mv("B", "2.0"),
        mv("C", "1.0", dep("B", "2.0")),
    )


@pytest.fixture
def cycle_registry():
    """A@1 depends on B@1 which depends back on A@1."""
    return make_registry(
        mv("A", "1", dep("B", "1")),
        mv("B", "1", dep("A", "1")),
    )


@pytest.fixture
def dev_registry():
    """R has a regular dep X and a dev dep D; D has a regular dep Y."""
    return make_registry(
        mv("R", "1", dep("X", "1"), dep("D", "1", dev=True)),
        mv("X", "1"),
        mv("D", "1", dep("Y", "1")),
        mv("Y", "1"),
    )
