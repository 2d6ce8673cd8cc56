"""
Command-line entry point: ``python -m binding_coverage``.

Exits 0 when every declared function is bound (or ignored) and no error
occurred, 1 otherwise.
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from rich.console import Console

from binding_coverage.config import CoverageConfig
from binding_coverage.coverage_reconciler import CoverageReconciler
from binding_coverage.modules import DEFAULT_MODULES
from binding_coverage.reporting import ConsoleSink, deliver

console = Console()
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="binding_coverage",
        description="Report native header functions that have no binding.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Defaults come from BINDCOV_* environment variables, e.g.\n"
            "  BINDCOV_HEADER_ROOT=/usr/include/allegro5 BINDCOV_PACKAGE_ROOT=./allegro"
        ),
    )
    parser.add_argument("--header-root", default=None, help="Directory of native headers")
    parser.add_argument("--package-root", default=None, help="Binding package root directory")
    parser.add_argument("--marker", default=None, help="Foreign-call marker preceding bound names (default: 'C.')")
    parser.add_argument("--global-macro", default=None, help="Declaration macro of ungrouped functions (default: AL_FUNC)")
    parser.add_argument("--source-suffix", action="append", default=None,
                        help="Binding source file suffix, repeatable (default: .go)")
    parser.add_argument("--skip-modules", action="store_true", help="Only run the global header pass")
    parser.add_argument("--no-summary", action="store_true", help="Only print failure lines")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CoverageConfig:
    """Environment configuration overridden by explicit flags."""
    config = CoverageConfig.from_env()
    overrides = {
        "header_root": args.header_root,
        "package_root": args.package_root,
        "foreign_call_marker": args.marker,
        "global_macro": args.global_macro,
        "source_suffixes": tuple(args.source_suffix) if args.source_suffix else None,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    config = build_config(args)
    for warning in config.validate():
        console.print(f"[yellow]Warning: {warning}[/yellow]")

    reconciler = CoverageReconciler(config, modules=() if args.skip_modules else DEFAULT_MODULES)
    result = reconciler.run()
    deliver(result, ConsoleSink(console, show_summary=not args.no_summary))
    if args.verbose:
        reconciler.metrics.log_summary(logging.DEBUG)
    return 0 if result.passed else 1


def main_entry() -> None:
    sys.exit(main())
