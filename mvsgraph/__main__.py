"""Main CLI entry point for mvsgraph."""

import argparse
import logging
import sys
from typing import Optional, Tuple

from . import __version__
from .commands.stats import show_stats
from .commands.validate import report_diagnostics
from .formatters import OutputFormatter
from .models import Registry
from .parsers import RegistryParser, RegistryFormatError
from .registry import RegistryCache, create_module_map
from .resolver import DevMode

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        level = getattr(logging, log_level.upper(), logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def parse_module_ref(ref: str) -> Tuple[str, str]:
    """Split "name@version" into its parts."""
    name, sep, version = ref.rpartition('@')
    if not sep or not name or not version:
        raise argparse.ArgumentTypeError(f"expected name@version, got {ref!r}")
    return name, version


def load_registry(path: str) -> Optional[Registry]:
    """Load a registry snapshot, printing the error and returning None on failure."""
    try:
        return RegistryParser.parse_registry_file(path)
    except (OSError, RegistryFormatError) as e:
        logger.error(f"Error loading registry: {e}")
        print(f"Error loading registry: {e}", file=sys.stderr)
        return None


def write_output(output: str, output_file: str) -> int:
    try:
        if output_file == '-':
            print(output, end='')
        else:
            with open(output_file, 'w') as f:
                f.write(output)
            logger.info(f"Output written to: {output_file}")
            print(f"Output written to: {output_file}")
    except OSError as e:
        logger.error(f"Error writing output: {e}")
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1
    return 0


def handle_resolve(args):
    """Handle the 'resolve' subcommand."""
    setup_logging(args.verbose, args.loglevel)

    registry = load_registry(args.registry)
    if registry is None:
        return 1

    name, version = args.module
    cache = RegistryCache()
    tree = cache.dependency_tree(registry, name, version, DevMode.parse(args.dev))
    if tree is None:
        print(f"Module version not available: {name}@{version}", file=sys.stderr)
        return 1

    if args.output_format == 'list':
        output = OutputFormatter.format_as_list(tree.selected)
    elif args.output_format == 'json':
        output = OutputFormatter.format_as_json(tree)
    elif args.output_format == 'sbom':
        command_line = ' '.join(sys.argv[1:])
        output = OutputFormatter.format_as_sbom(tree, command_line)
    else:
        output = OutputFormatter.format_as_tree(tree, args.tree_style)

    return write_output(output, args.output)


def handle_check(args):
    """Handle the 'check' subcommand."""
    setup_logging(args.verbose, args.loglevel)

    registry = load_registry(args.registry)
    if registry is None:
        return 1

    name, version = args.module
    tree = RegistryCache().dependency_tree(registry, name, version, DevMode.parse(args.dev))
    if tree is None:
        print(f"Module version not available: {name}@{version}", file=sys.stderr)
        return 1

    warnings = report_diagnostics(tree)
    return 1 if warnings and args.strict else 0


def handle_dependents(args):
    """Handle the 'dependents' subcommand."""
    setup_logging(args.verbose, args.loglevel)

    registry = load_registry(args.registry)
    if registry is None:
        return 1

    name, version = args.module
    dependents = RegistryCache().direct_dependents(registry, name, version)
    logger.info(f"Found {len(dependents)} direct dependents of {name}@{version}")

    output = ''.join(f"{mv.key}\n" for mv in dependents)
    return write_output(output, args.output)


def handle_versions(args):
    """Handle the 'versions' subcommand."""
    setup_logging(args.verbose, args.loglevel)

    registry = load_registry(args.registry)
    if registry is None:
        return 1

    module = create_module_map(registry).get(args.name)
    if module is None:
        print(f"Module not available: {args.name}", file=sys.stderr)
        return 1

    summaries = RegistryCache().version_summary(registry, module)
    yanked = module.metadata.yanked_versions if module.metadata else {}

    lines = []
    for version, summary in summaries.items():
        line = f"{module.name}@{version}  behind={summary.versions_behind}"
        if summary.age_summary:
            line += f"  age={summary.age_summary}"
        if version in yanked:
            line += f"  yanked ({yanked[version]})"
        lines.append(line)

    return write_output('\n'.join(lines) + '\n' if lines else '', args.output)


def handle_stats(args):
    """Handle the 'stats' subcommand."""
    setup_logging(args.verbose, args.loglevel)

    registry = load_registry(args.registry)
    if registry is None:
        return 1

    show_stats(registry)
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('registry', help='Registry snapshot JSON file (- for stdin)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('--loglevel', choices=['DEBUG', 'INFO', 'WARN', 'ERROR'],
                        help='Set log level')


def _add_dev_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--dev', default='exclude', choices=['exclude', 'include', 'only'],
                        help='Dev dependencies: exclude, include, or only the root\'s dev deps. Default: exclude')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='mvsgraph',
        description='Minimal Version Selection over a module registry snapshot'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Subcommands')

    # Resolve command
    resolve_parser = subparsers.add_parser('resolve', help='Compute the MVS dependency tree of a module version')
    _add_common_arguments(resolve_parser)
    resolve_parser.add_argument('module', type=parse_module_ref, help='Root module as name@version')
    resolve_parser.add_argument('-o', '--output', default='-',
                                help='Output file (default: stdout, use - for stdout)')
    resolve_parser.add_argument('--format', dest='output_format', default='tree',
                                choices=['tree', 'list', 'json', 'sbom'],
                                help='Output format (tree, list, json, sbom). Default: tree')
    resolve_parser.add_argument('--tree-style', dest='tree_style', default='unicode',
                                choices=['unicode', 'ascii'],
                                help='Tree visualization style (unicode, ascii). Default: unicode')
    _add_dev_argument(resolve_parser)
    resolve_parser.set_defaults(func=handle_resolve)

    # Check command
    check_parser = subparsers.add_parser('check', help='Report yanked, compatibility and mismatch diagnostics')
    _add_common_arguments(check_parser)
    check_parser.add_argument('module', type=parse_module_ref, help='Root module as name@version')
    check_parser.add_argument('--strict', action='store_true', help='Exit with status 1 if there are warnings')
    _add_dev_argument(check_parser)
    check_parser.set_defaults(func=handle_check)

    # Dependents command
    dependents_parser = subparsers.add_parser('dependents', help='List module versions that directly depend on a module version')
    _add_common_arguments(dependents_parser)
    dependents_parser.add_argument('module', type=parse_module_ref, help='Module as name@version')
    dependents_parser.add_argument('-o', '--output', default='-', help='Output file (default: stdout)')
    dependents_parser.set_defaults(func=handle_dependents)

    # Versions command
    versions_parser = subparsers.add_parser('versions', help='Show how far each version trails the latest')
    _add_common_arguments(versions_parser)
    versions_parser.add_argument('name', help='Module name')
    versions_parser.add_argument('-o', '--output', default='-', help='Output file (default: stdout)')
    versions_parser.set_defaults(func=handle_versions)

    # Stats command
    stats_parser = subparsers.add_parser('stats', help='Show registry snapshot statistics')
    _add_common_arguments(stats_parser)
    stats_parser.set_defaults(func=handle_stats)

    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
