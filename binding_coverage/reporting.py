"""
Reporting sinks for coverage results.

A sink receives each missing-function report, then each run error, then
the finished result. ``CollectingSink`` keeps the rendered lines (used by
the pytest entry point); ``ConsoleSink`` prints them with rich.
"""

import logging
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from binding_coverage.models import CoverageResult, MissingFunctionReport, RunError

logger = logging.getLogger(__name__)


class ReportSink:
    """Base sink. Subclasses override the hooks they care about."""

    def report(self, report: MissingFunctionReport) -> None:
        pass

    def error(self, run_error: RunError) -> None:
        pass

    def finish(self, result: CoverageResult) -> None:
        pass


class CollectingSink(ReportSink):
    """Collects rendered failure lines in delivery order."""

    def __init__(self):
        self.lines: List[str] = []

    def report(self, report: MissingFunctionReport) -> None:
        self.lines.append(report.render())

    def error(self, run_error: RunError) -> None:
        self.lines.append(run_error.render())


class ConsoleSink(ReportSink):
    """Prints failure lines and a summary to a rich console."""

    def __init__(self, console: Optional[Console] = None, show_summary: bool = True):
        self.console = console or Console()
        self.show_summary = show_summary

    def report(self, report: MissingFunctionReport) -> None:
        self.console.print(f"[red]{escape(report.render())}[/red]")

    def error(self, run_error: RunError) -> None:
        self.console.print(f"[yellow]{escape(run_error.render())}[/yellow]")

    def finish(self, result: CoverageResult) -> None:
        if not self.show_summary:
            return
        summary = result.summary()
        if result.passed:
            self.console.print("[green]✅ All declared functions are bound[/green]")
            return
        self.console.print(
            f"\n[bold]Missing functions:[/bold] {summary['missing_functions']} "
            f"(global: {summary['global_missing']})"
        )
        if summary["modules_with_missing"]:
            self.console.print(f"[bold]Modules with gaps:[/bold] {', '.join(summary['modules_with_missing'])}")
        self.console.print(f"[bold]Errors:[/bold] {summary['errors']}")


def deliver(result: CoverageResult, sink: ReportSink) -> None:
    """Feed a result to a sink: reports first, then errors, then finish."""
    for report in result.reports:
        sink.report(report)
    for run_error in result.errors:
        sink.error(run_error)
    sink.finish(result)
    logger.debug(f"Delivered {len(result.reports)} report(s) and {len(result.errors)} error(s)")
