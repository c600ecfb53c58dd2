#!/usr/bin/env python3
"""
Build a knowledge network from BKN documents.

This script:
1. Reads .bkn documents from a project directory (or a single file)
2. Extracts entities, relations and actions
3. Saves network.json with the assembled network
4. Saves graph.json with the node/edge view
5. Saves diagnostics.json with records that were dropped

Usage:
    python Ingress/build_network.py
    python Ingress/build_network.py --input examples/k8s-modular
    python Ingress/build_network.py --reset
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
from bkn.builder import NetworkBuilder


BASE_DIR = Path(__file__).resolve().parents[1]
EXAMPLES_DIR = BASE_DIR / "examples"
NETWORK_DIR = BASE_DIR / "output" / "network"


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Build a knowledge network from BKN documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Build every example project
    python Ingress/build_network.py

    # Build one project directory
    python Ingress/build_network.py --input examples/k8s-modular

    # Build a single network file into a custom directory
    python Ingress/build_network.py --input examples/k8s-topology.bkn --output output/topology

    # Verbose output
    python Ingress/build_network.py --verbose
        """
    )

    parser.add_argument(
        "--input",
        type=Path,
        help="Project directory or .bkn file to process (default: every project in examples/)"
    )

    parser.add_argument(
        "--output",
        type=Path,
        default=NETWORK_DIR,
        help=f"Output directory for exports (default: {NETWORK_DIR})"
    )

    parser.add_argument(
        "--reset",
        action="store_true",
        help="Remove existing exports before building"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show detailed output"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("\n" + "=" * 70)
    print("BKN Network Builder")
    print("=" * 70)

    # Determine inputs; each gets its own output sub-directory when building several
    if args.input:
        if not args.input.exists():
            print(f"\n✗ Error: Path not found: {args.input}")
            return 1
        sources = [args.input]
    else:
        if not EXAMPLES_DIR.exists():
            print(f"\n✗ Error: Directory not found: {EXAMPLES_DIR}")
            return 1

        sources = sorted(
            p for p in EXAMPLES_DIR.iterdir()
            if p.is_dir() or p.suffix == ".bkn"
        )

        if not sources:
            print(f"\n✗ Error: No projects found in {EXAMPLES_DIR}")
            return 1

    print(f"\nInput: {len(sources)} project(s)")
    print(f"Output: {args.output}")
    print("=" * 70)

    totals = {"entities": 0, "relations": 0, "actions": 0, "dropped": 0}
    projects_built = 0
    projects_failed = 0

    for source in sources:
        print(f"\nProcessing: {source.name}")
        output_dir = args.output if len(sources) == 1 else args.output / (source.stem if source.is_file() else source.name)
        builder = NetworkBuilder(output_dir)

        try:
            stats = builder.build_from_directory(source, clean_existing=args.reset)
        except (OSError, UnicodeDecodeError) as e:
            print(f"  ✗ Error: {e}")
            if args.verbose:
                import traceback
                traceback.print_exc()
            projects_failed += 1
            continue

        if stats['files_count'] == 0:
            print(f"  ⚠ No .bkn documents found")
        else:
            print(f"  ✓ Network '{stats['network_id']}' ({stats['network_name']})")
            print(
                f"    {stats['entities_count']} entities, "
                f"{stats['relations_count']} relations, "
                f"{stats['actions_count']} actions "
                f"from {stats['files_count']} file(s)"
            )
            if args.verbose:
                print(f"    By Type: {stats['by_type']}")

        for diagnostic in stats['diagnostics']:
            print(
                f"  ⚠ Dropped {diagnostic['kind']} '{diagnostic['recordId']}' "
                f"in {diagnostic['path']}: {diagnostic['reason']}"
            )

        totals["entities"] += stats['entities_count']
        totals["relations"] += stats['relations_count']
        totals["actions"] += stats['actions_count']
        totals["dropped"] += stats['dropped_count']
        projects_built += 1

    # Summary
    print("\n" + "=" * 70)
    print("NETWORK BUILD COMPLETE")
    print("=" * 70)
    print(f"  Projects built: {projects_built}")
    print(f"  Projects failed: {projects_failed}")
    print(f"  Entities: {totals['entities']}")
    print(f"  Relations: {totals['relations']}")
    print(f"  Actions: {totals['actions']}")
    print(f"  Dropped records: {totals['dropped']}")
    print(f"\nExport location: {args.output}")
    print(f"  • network.json      - Entities, relations and actions")
    print(f"  • graph.json        - Nodes and edges")
    print(f"  • diagnostics.json  - Records dropped during assembly")
    print("=" * 70 + "\n")

    return 0 if projects_failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
