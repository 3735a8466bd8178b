"""Tests for output formatters."""

import json

import pytest

from conftest import dep, make_registry, mv
from mvsgraph.formatters import OutputFormatter
from mvsgraph.models import GitOverride
from mvsgraph.resolver import DevMode, MVSResolver


@pytest.fixture
def upgrade_tree(upgrade_registry):
    return MVSResolver.from_registry(upgrade_registry).compute_dependency_tree("R", "1")


@pytest.fixture
def app_tree():
    """app@1.0 with a regular dep on lib_a, which needs lib_b, and a dev dep on tool."""
    registry = make_registry(
        mv("app", "1.0", dep("lib_a", "1.0"), dep("tool", "2.0", dev=True)),
        mv("lib_a", "1.0", dep("lib_b", "0.5")),
        mv("lib_b", "0.5"),
        mv("tool", "2.0", dep("lib_b", "0.5")),
    )
    return MVSResolver.from_registry(registry).compute_dependency_tree("app", "1.0", DevMode.INCLUDE)


class TestTreeFormat:
    """Tests for format_as_tree."""

    def test_unicode_tree(self, upgrade_tree):
        output = OutputFormatter.format_as_tree(upgrade_tree)

        assert output.splitlines() == [
            "Dependency Tree:",
            "",
            "R@1",
            "├── B@2.0 (1.0 -> 2.0, pruned)",
            "└── C@1.0",
            "    └── B@2.0",
            "",
            "Dependency Statistics:",
            "  Selected Modules: 3",
            "  Direct Dependencies: 2",
            "  Tree Nodes: 3",
            "  Upgraded: 1",
            "  Pruned: 1",
        ]

    def test_ascii_tree(self, upgrade_tree):
        lines = OutputFormatter.format_as_tree(upgrade_tree, 'ascii').splitlines()

        assert lines[3:6] == [
            "+- B@2.0 (1.0 -> 2.0, pruned)",
            "\\- C@1.0",
            "   \\- B@2.0",
        ]

    def test_node_notes(self):
        registry = make_registry(
            mv("R", "1", dep("A", "1", dev=True, override=GitOverride(remote="r", commit="c")), dep("B", "1")),
            mv("A", "1", dep("B", "1")),
            mv("B", "1"),
        )
        tree = MVSResolver.from_registry(registry).compute_dependency_tree("R", "1", DevMode.INCLUDE)

        lines = OutputFormatter.format_as_tree(tree).splitlines()

        assert "├── A@1 (git_override, dev)" in lines
        assert "│   └── B@1" in lines
        assert "└── B@1 (pruned)" in lines


class TestListFormat:
    """Tests for format_as_list."""

    def test_sorted_by_name(self, upgrade_tree):
        assert OutputFormatter.format_as_list(upgrade_tree.selected) == "B@2.0\nC@1.0\nR@1\n"

    def test_empty(self):
        assert OutputFormatter.format_as_list({}) == ""


class TestJsonFormat:
    """Tests for format_as_json."""

    def test_json_structure(self, upgrade_tree):
        data = json.loads(OutputFormatter.format_as_json(upgrade_tree))

        assert data["root"] == "R@1"
        assert data["selected"] == {"B": "2.0", "C": "1.0", "R": "1"}
        assert data["children"][0] == {
            "name": "B", "version": "2.0", "requestedVersion": "1.0", "upgraded": True, "pruned": True,
        }
        assert data["children"][1]["children"] == [
            {"name": "B", "version": "2.0", "requestedVersion": "2.0"},
        ]
        assert [d["code"] for d in data["diagnostics"]] == ["direct-mismatch"]
        assert data["diagnostics"][0]["kind"] == "warning"
        assert data["diagnostics"][0]["module"] == "B"


class TestSbomFormat:
    """Tests for format_as_sbom."""

    def test_sbom_structure(self, app_tree):
        sbom = json.loads(OutputFormatter.format_as_sbom(app_tree, "resolve registry.json app@1.0"))

        assert sbom["bomFormat"] == "CycloneDX"
        assert sbom["specVersion"] == "1.6"
        assert sbom["serialNumber"].startswith("urn:uuid:")
        assert sbom["metadata"]["component"]["name"] == "app"
        assert sbom["metadata"]["timestamp"].endswith("Z")
        assert {"name": "commandLine", "value": "resolve registry.json app@1.0"} in sbom["metadata"]["properties"]

    def test_components_exclude_root(self, app_tree):
        sbom = json.loads(OutputFormatter.format_as_sbom(app_tree))

        purls = [c["purl"] for c in sbom["components"]]
        assert purls == ["pkg:bazel/lib_a@1.0", "pkg:bazel/lib_b@0.5", "pkg:bazel/tool@2.0"]
        assert all(c["bom-ref"] == c["purl"] for c in sbom["components"])

    def test_dev_only_components_are_excluded_scope(self, app_tree):
        sbom = json.loads(OutputFormatter.format_as_sbom(app_tree))

        scopes = {c["name"]: c.get("scope") for c in sbom["components"]}
        assert scopes["tool"] == "excluded"
        # lib_b is also reachable through lib_a
        assert scopes["lib_b"] == "required"
        assert scopes["lib_a"] == "required"

    def test_dependencies(self, app_tree):
        sbom = json.loads(OutputFormatter.format_as_sbom(app_tree))

        depends_on = {d["ref"]: d["dependsOn"] for d in sbom["dependencies"]}
        assert depends_on == {
            "pkg:bazel/app@1.0": ["pkg:bazel/lib_a@1.0", "pkg:bazel/tool@2.0"],
            "pkg:bazel/lib_a@1.0": ["pkg:bazel/lib_b@0.5"],
            "pkg:bazel/lib_b@0.5": [],
            "pkg:bazel/tool@2.0": ["pkg:bazel/lib_b@0.5"],
        }
