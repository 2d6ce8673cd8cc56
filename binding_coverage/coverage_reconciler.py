"""
Coverage reconciler: drives header scanning and classifies every declared
function as bound, ignored, or missing.

A run has two passes:

    1. Global pass   every header under the header root (minus ``internal``
                     directories) is scanned with the global macro and checked
                     against the binding sources directly in the package root.
    2. Module pass   each module header is scanned with the module's own macro
                     and checked against that module's source subdirectory.

Results flow through two channels (missing-function reports and run errors)
which are drained concurrently by :meth:`CoverageReconciler.run`.
"""

import os
import logging
import threading
from typing import Iterable, Iterator, List, Optional

from binding_coverage.channels import Channel
from binding_coverage.config import CoverageConfig, DEFAULT_CONFIG
from binding_coverage.declaration_matcher import DeclarationPattern
from binding_coverage.exceptions import (
    CoverageError,
    MalformedDeclarationError,
    ModuleHeaderNotFoundError,
    ModuleSourceNotFoundError,
    UnreadableHeaderError,
    UnreadableSourceTreeError,
)
from binding_coverage.line_reassembler import stream_logical_lines
from binding_coverage.metrics import MetricsCollector
from binding_coverage.models import (
    CoverageResult,
    ExtractedDeclaration,
    MissingFunctionReport,
    ModuleSpec,
    RunError,
)
from binding_coverage.modules import DEFAULT_IGNORE_SET, DEFAULT_MODULES
from binding_coverage.utils import (
    contains_reference,
    read_binding_source,
    read_header,
    walk_headers,
)

logger = logging.getLogger(__name__)


class CoverageReconciler:
    """
    Cross-references header declarations against binding sources.

    The module table and ignore set are fixed at construction and never
    modified during a run.

    Usage:
        reconciler = CoverageReconciler(CoverageConfig(package_root="allegro"))
        result = reconciler.run()
        for line in result.rendered_lines():
            print(line)
    """

    def __init__(self, config: CoverageConfig = None,
                 modules: Iterable[ModuleSpec] = DEFAULT_MODULES,
                 ignore_set: Iterable[str] = DEFAULT_IGNORE_SET,
                 metrics: Optional[MetricsCollector] = None):
        self.config = config or DEFAULT_CONFIG
        self.modules = tuple(modules)
        self.ignore_set = frozenset(ignore_set)
        self.metrics = metrics or MetricsCollector()
        self.global_pattern = DeclarationPattern.compile(self.config.global_macro)
        self._module_patterns = {
            m.name: DeclarationPattern.compile(m.macro) for m in self.modules
        }

    def pattern_for(self, module: ModuleSpec) -> DeclarationPattern:
        return self._module_patterns[module.name]

    # --- Extraction & Classification ---

    def extract_declarations(self, text: str, pattern: DeclarationPattern,
                             header: str, module: str = "") -> Iterator[ExtractedDeclaration]:
        """
        Yield the public declarations in one header's text.

        Raises:
            MalformedDeclarationError: after yielding every declaration that
                precedes an unterminated macro invocation.
        """
        with stream_logical_lines(text, pattern.macro, header,
                                  maxsize=self.config.line_queue_size) as lines:
            for line in lines:
                parsed = pattern.match(line)
                if parsed is None:
                    continue
                decl = ExtractedDeclaration(
                    name=parsed.name,
                    return_type=parsed.return_type,
                    params=parsed.params,
                    header=header,
                    module=module,
                )
                if decl.is_private:
                    # underscore names are internal to the native library
                    self.metrics.increment("declarations.private")
                    continue
                self.metrics.increment("declarations.extracted")
                yield decl

    def find_missing(self, declarations: Iterable[ExtractedDeclaration],
                     source: str) -> Iterator[MissingFunctionReport]:
        """Yield a report for every declaration neither ignored nor bound."""
        marker = self.config.foreign_call_marker
        for decl in declarations:
            if decl.name in self.ignore_set:
                self.metrics.increment("declarations.ignored")
                continue
            if contains_reference(source, marker, decl.name):
                self.metrics.increment("declarations.bound")
                continue
            self.metrics.increment("declarations.missing")
            yield MissingFunctionReport.from_declaration(decl)

    # --- Production Stage ---

    def scan(self, reports: Channel, errors: Channel) -> None:
        """
        Produce every report and error for a run onto the two channels.
        Both channels are closed on return, including after a fatal error.
        """
        try:
            if self._scan_global(reports, errors):
                self._scan_modules(reports, errors)
        finally:
            reports.close()
            errors.close()

    def _scan_global(self, reports: Channel, errors: Channel) -> bool:
        cfg = self.config
        logger.info(f"Scanning global headers under {cfg.header_root}")
        with self.metrics.time_pass():
            try:
                source = read_binding_source(cfg.package_root, cfg.source_suffixes, cfg.encoding)
            except UnreadableSourceTreeError as e:
                logger.error(f"Aborting run, binding source unreadable: {e}")
                self._emit_error(errors, e)
                return False

            # Unlistable subdirectories are reported and the walk continues;
            # a missing header root ends the global pass only.
            headers = walk_headers(cfg.header_root, cfg.header_suffix, cfg.skip_dir_names,
                                   on_error=lambda e: self._emit_error(errors, e))
            try:
                for header in headers:
                    self._scan_global_header(header, source, reports, errors)
            except UnreadableHeaderError as e:
                self._emit_error(errors, e)
        return True

    def _scan_global_header(self, header: str, source: str,
                            reports: Channel, errors: Channel) -> None:
        try:
            text = read_header(header, self.config.encoding)
        except UnreadableHeaderError as e:
            self._emit_error(errors, e)
            return
        self._scan_header(text, source, header, self.global_pattern, "", reports, errors)

    def _scan_modules(self, reports: Channel, errors: Channel) -> None:
        for module in self.modules:
            with self.metrics.time_pass(module.name):
                self._scan_module(module, reports, errors)

    def _scan_module(self, module: ModuleSpec, reports: Channel, errors: Channel) -> None:
        cfg = self.config
        header = os.path.join(cfg.header_root, module.header_file_name(cfg.header_prefix, cfg.header_suffix))
        root = os.path.join(cfg.package_root, *module.source_subdirectory.split("/"))

        if not os.path.exists(header):
            self._emit_error(errors, ModuleHeaderNotFoundError(module.name, header), module.name)
            return
        if not os.path.isdir(root):
            self._emit_error(errors, ModuleSourceNotFoundError(module.name, root), module.name)
            return

        logger.info(f"Scanning module '{module.name}' ({header})")
        try:
            text = read_header(header, cfg.encoding, module=module.name)
            source = read_binding_source(root, cfg.source_suffixes, cfg.encoding, module=module.name)
        except (UnreadableHeaderError, UnreadableSourceTreeError) as e:
            self._emit_error(errors, e, module.name)
            return
        self._scan_header(text, source, header, self.pattern_for(module), module.name, reports, errors)

    def _scan_header(self, text: str, source: str, header: str,
                     pattern: DeclarationPattern, module: str,
                     reports: Channel, errors: Channel) -> None:
        self.metrics.increment("headers.scanned")
        logger.debug(f"Scanning {header} for {pattern.macro}")
        declarations = self.extract_declarations(text, pattern, header, module)
        try:
            for report in self.find_missing(declarations, source):
                reports.put(report)
        except MalformedDeclarationError as e:
            e.details["module"] = module
            self._emit_error(errors, e, module)

    def _emit_error(self, errors: Channel, error: CoverageError, module: str = "") -> None:
        logger.warning(f"{type(error).__name__}: {error}")
        self.metrics.record_error(type(error).__name__)
        errors.put(RunError(error=error, module=module))

    # --- Run ---

    def run(self) -> CoverageResult:
        """
        Run both passes with one producer and two concurrent consumers.

        Returns:
            CoverageResult holding the reports and errors in channel order.
        """
        self.metrics.reset()
        reports: Channel = Channel(name="reports")
        errors: Channel = Channel(name="errors")
        collected_reports: List[MissingFunctionReport] = []
        collected_errors: List[RunError] = []
        failure: List[BaseException] = []

        def produce():
            try:
                self.scan(reports, errors)
            except Exception as e:
                logger.exception(f"Coverage scan failed: {e}")
                failure.append(e)

        threads = [
            threading.Thread(target=produce, name="coverage-scan"),
            threading.Thread(target=lambda: collected_reports.extend(reports), name="coverage-reports"),
            threading.Thread(target=lambda: collected_errors.extend(errors), name="coverage-errors"),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        if failure:
            raise failure[0]

        result = CoverageResult(
            reports=tuple(collected_reports),
            errors=tuple(collected_errors),
            metrics=self.metrics.summary(),
        )
        logger.info(
            f"Coverage run finished: {len(result.reports)} missing function(s), "
            f"{len(result.errors)} error(s)"
        )
        return result
