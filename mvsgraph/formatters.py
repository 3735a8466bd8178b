"""Output formatters for resolution results."""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from packageurl import PackageURL
from cyclonedx.model import ExternalReference, ExternalReferenceType, XsUri
from cyclonedx.model.bom import Bom
from cyclonedx.model.component import Component, ComponentScope, ComponentType
from cyclonedx.output.json import JsonV1Dot6

from .diagnostics import Diagnostic
from .models import DependencyTree, DependencyTreeNode, ModuleVersion

logger = logging.getLogger(__name__)

TREE_STYLES = {
    'unicode': ("├── ", "└── ", "│   ", "    "),
    'ascii': ("+- ", "\\- ", "|  ", "   "),
}


class OutputFormatter:
    """Formatter for the supported output formats."""

    @staticmethod
    def format_as_list(selected: Mapping[str, ModuleVersion]) -> str:
        """Format selected versions as a flat list (one name@version per line, sorted by name)."""
        lines = [selected[name].key for name in sorted(selected)]
        return '\n'.join(lines) + '\n' if lines else ''

    @staticmethod
    def format_as_tree(tree: DependencyTree, style: str = 'unicode') -> str:
        """Format as a tree visualization followed by statistics."""
        branch, last_branch, pipe, space = TREE_STYLES.get(style, TREE_STYLES['unicode'])

        lines = ["Dependency Tree:", "", tree.module_version.key]

        def render(nodes: List[DependencyTreeNode], prefix: str) -> None:
            for i, node in enumerate(nodes):
                is_last = i == len(nodes) - 1
                connector = last_branch if is_last else branch
                lines.append(f"{prefix}{connector}{OutputFormatter._node_label(node)}")
                render(node.children, prefix + (space if is_last else pipe))

        render(tree.children, "")

        nodes = list(tree.iter_nodes())
        lines.extend([
            "",
            "Dependency Statistics:",
            f"  Selected Modules: {len(tree.selected)}",
            f"  Direct Dependencies: {len(tree.children)}",
            f"  Tree Nodes: {len(nodes)}",
            f"  Upgraded: {sum(1 for n in nodes if n.upgraded)}",
            f"  Pruned: {sum(1 for n in nodes if n.pruned)}",
        ])

        return '\n'.join(lines) + '\n'

    @staticmethod
    def _node_label(node: DependencyTreeNode) -> str:
        label = node.module_version.key
        notes = []
        if node.upgraded:
            notes.append(f"{node.requested_version} -> {node.version}")
        if node.override_type:
            notes.append(f"{node.override_type}_override")
        if node.dev:
            notes.append("dev")
        if node.pruned:
            notes.append("pruned")
        if notes:
            label += f" ({', '.join(notes)})"
        return label

    @staticmethod
    def format_as_json(tree: DependencyTree) -> str:
        """Format the tree, selection and diagnostics as JSON."""
        data = {
            'root': tree.module_version.key,
            'selected': {name: mv.version for name, mv in sorted(tree.selected.items())},
            'children': [OutputFormatter._node_to_dict(child) for child in tree.children],
            'diagnostics': [OutputFormatter._diagnostic_to_dict(d) for d in tree.diagnostics],
        }
        return json.dumps(data, indent=2) + '\n'

    @staticmethod
    def _node_to_dict(node: DependencyTreeNode) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'name': node.name,
            'version': node.version,
            'requestedVersion': node.requested_version,
        }
        for flag in ('upgraded', 'dev', 'pruned'):
            if getattr(node, flag):
                data[flag] = True
        if node.override_type:
            data['overrideType'] = node.override_type
        if node.children:
            data['children'] = [OutputFormatter._node_to_dict(child) for child in node.children]
        return data

    @staticmethod
    def _diagnostic_to_dict(diagnostic: Diagnostic) -> Dict[str, Any]:
        data = {
            'kind': diagnostic.kind.value,
            'code': diagnostic.code,
            'message': diagnostic.message,
        }
        if diagnostic.module:
            data['module'] = diagnostic.module
        if diagnostic.version:
            data['version'] = diagnostic.version
        return data

    @staticmethod
    def format_as_sbom(tree: DependencyTree, command_line: Optional[str] = None) -> str:
        """Generate a CycloneDX SBOM (JSON) of the selected versions and their edges."""
        from . import __version__

        bom = Bom()
        bom.serial_number = uuid4()

        tool_purl = PackageURL(type='pypi', name='mvsgraph', version=__version__)
        tool_component = Component(
            name="mvsgraph",
            version=__version__,
            type=ComponentType.APPLICATION,
            purl=tool_purl,
            bom_ref=tool_purl.to_string(),
            external_references=[
                ExternalReference(
                    type=ExternalReferenceType.DOCUMENTATION,
                    url=XsUri("https://research.swtch.com/vgo-mvs")
                )
            ]
        )
        bom.metadata.tools.components.add(tool_component)
        bom.metadata.timestamp = datetime.now(timezone.utc).replace(microsecond=0)

        root = tree.module_version
        bom.metadata.component = OutputFormatter._module_to_component(root, ComponentType.APPLICATION)

        dev_only = OutputFormatter._dev_only_modules(tree)
        for name in sorted(tree.selected):
            module_version = tree.selected[name]
            if module_version.key == root.key:
                continue
            component = OutputFormatter._module_to_component(module_version)
            component.scope = ComponentScope.EXCLUDED if name in dev_only else ComponentScope.REQUIRED
            bom.components.add(component)

        outputter = JsonV1Dot6(bom)
        sbom = json.loads(outputter.output_as_string())

        # Dependencies are added from the tree, pointing at the selected version of each child
        selected_refs = {mv.name: OutputFormatter._build_purl(mv) for mv in tree.selected.values()}
        dependency_map = OutputFormatter._build_dependency_map(tree)
        dependencies = []
        for name in sorted(tree.selected):
            module_version = tree.selected[name]
            children = dependency_map.get(module_version.key, set())
            dependencies.append({
                'ref': selected_refs[name],
                'dependsOn': sorted(selected_refs[child] for child in children if child in selected_refs)
            })
        dependencies.sort(key=lambda d: d['ref'])
        sbom['dependencies'] = dependencies

        metadata = sbom.setdefault('metadata', {})
        if command_line:
            metadata.setdefault('properties', []).append({'name': 'commandLine', 'value': command_line})

        if 'timestamp' in metadata:
            match = re.match(r'(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})', metadata['timestamp'])
            if match:
                metadata['timestamp'] = match.group(1) + 'Z'

        ordered_sbom = {
            'bomFormat': sbom.get('bomFormat'),
            'specVersion': sbom.get('specVersion'),
            'serialNumber': sbom.get('serialNumber'),
            'version': sbom.get('version', 1),
            'metadata': metadata,
            'components': sorted(sbom.get('components', []), key=lambda c: c.get('purl', '')),
            'dependencies': dependencies,
        }
        return json.dumps(ordered_sbom, indent=2) + '\n'

    @staticmethod
    def _dev_only_modules(tree: DependencyTree) -> set:
        """Module names reached exclusively through dev edges."""
        reached_by_regular = set()
        reached = set()

        def walk(nodes: List[DependencyTreeNode], under_dev: bool) -> None:
            for node in nodes:
                is_dev = under_dev or node.dev
                reached.add(node.name)
                if not is_dev:
                    reached_by_regular.add(node.name)
                walk(node.children, is_dev)

        walk(tree.children, False)
        return reached - reached_by_regular

    @staticmethod
    def _build_dependency_map(tree: DependencyTree) -> Dict[str, set]:
        """Map "name@version" -> names of its direct children, collected from every occurrence in the tree."""
        dependency_map: Dict[str, set] = {tree.module_version.key: {c.name for c in tree.children}}
        for node in tree.iter_nodes():
            if node.pruned:
                continue
            dependency_map.setdefault(node.module_version.key, set()).update(c.name for c in node.children)
        return dependency_map

    @staticmethod
    def _module_to_component(module_version: ModuleVersion, component_type: ComponentType = ComponentType.LIBRARY) -> Component:
        purl_str = OutputFormatter._build_purl(module_version)
        return Component(
            name=module_version.name,
            version=module_version.version,
            type=component_type,
            purl=PackageURL.from_string(purl_str),
            bom_ref=purl_str,
        )

    @staticmethod
    def _build_purl(module_version: ModuleVersion) -> str:
        """Build a Package URL (purl) string for a module version."""
        return PackageURL(type='bazel', name=module_version.name, version=module_version.version).to_string()
