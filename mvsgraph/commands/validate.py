"""Check command for reporting the diagnostics of a resolution."""

import logging

from ..diagnostics import DiagnosticKind
from ..models import DependencyTree

logger = logging.getLogger(__name__)


def report_diagnostics(tree: DependencyTree) -> int:
    """
    Print the diagnostics of a resolution.

    Returns:
        Number of warnings found
    """
    warnings = [d for d in tree.diagnostics if d.kind is DiagnosticKind.WARNING]
    notes = [d for d in tree.diagnostics if d.kind is DiagnosticKind.INFO]
    nodes = list(tree.iter_nodes())

    print("Resolution Check Results:")
    print(f"  Root: {tree.module_version.key}")
    print()

    print("Resolution Checks:")
    print(f"  ✓ selected modules: {len(tree.selected)}")
    print(f"  ✓ tree nodes: {len(nodes)}")
    print(f"  ✓ upgraded edges: {sum(1 for n in nodes if n.upgraded)}")
    print(f"  ✓ pruned nodes: {sum(1 for n in nodes if n.pruned)}")

    if notes:
        print()
        print("Notes:")
        for note in notes:
            print(f"  ℹ {note.message}")

    if warnings:
        print()
        print("Warnings:")
        for warn in warnings:
            print(f"  ⚠ {warn.message}")

    print()
    if warnings:
        print(f"Result: ✓ Resolved with {len(warnings)} warning(s)")
    else:
        print("Result: ✓ Resolved with no issues")

    return len(warnings)
