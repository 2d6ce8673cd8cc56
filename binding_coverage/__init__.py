"""
binding_coverage - coverage checker for native-library language bindings.

Finds every function declared through a declaration macro in a tree of C
headers and reports the ones the binding sources never reference.

Architecture:
    ┌─────────────────────────────────────────────────┐
    │               CoverageReconciler                │  ← Public API
    │  (global + module passes, classification)       │
    ├─────────────────────────────────────────────────┤
    │              DeclarationPattern                 │  ← Matching
    │  (MACRO(type, name, (params)) per logical line) │
    ├─────────────────────────────────────────────────┤
    │       iter_logical_lines / LogicalLineStream    │  ← Reassembly
    │  (multi-line invocations, threaded producer)    │
    ├─────────────────────────────────────────────────┤
    │                    Channel                      │  ← Plumbing
    │  (closeable FIFO between pipeline stages)       │
    └─────────────────────────────────────────────────┘

Supporting modules:
    config.py      - CoverageConfig dataclass
    exceptions.py  - Custom exception hierarchy
    models.py      - Module table entries, reports, run errors, results
    modules.py     - allegro5 module table and ignore set
    utils.py       - Header walk and binding-source reads
    metrics.py     - Run counters and timings
    reporting.py   - Report sinks (collecting, rich console)
    cli.py         - ``python -m binding_coverage``
"""

# --- Core Public API ---
from binding_coverage.coverage_reconciler import CoverageReconciler
from binding_coverage.declaration_matcher import DeclarationPattern, GLOBAL_PATTERN
from binding_coverage.line_reassembler import (
    LogicalLineStream,
    iter_logical_lines,
    stream_logical_lines,
)
from binding_coverage.channels import Channel

# --- Configuration ---
from binding_coverage.config import CoverageConfig, DEFAULT_CONFIG
from binding_coverage.modules import DEFAULT_MODULES, DEFAULT_IGNORE_SET

# --- Models ---
from binding_coverage.models import (
    ModuleSpec,
    ParsedDeclaration,
    ExtractedDeclaration,
    MissingFunctionReport,
    RunError,
    CoverageResult,
)

# --- Exceptions ---
from binding_coverage.exceptions import (
    CoverageError,
    MissingBindingError,
    CorpusReadError,
    UnreadableHeaderError,
    UnreadableSourceTreeError,
    MissingModuleAssetsError,
    ModuleHeaderNotFoundError,
    ModuleSourceNotFoundError,
    MalformedDeclarationError,
    ConfigurationError,
)

# --- Infrastructure ---
from binding_coverage.metrics import MetricsCollector
from binding_coverage.reporting import ReportSink, CollectingSink, ConsoleSink, deliver

__version__ = "1.0.0"

__all__ = [
    # Core
    "CoverageReconciler",
    "DeclarationPattern",
    "GLOBAL_PATTERN",
    "LogicalLineStream",
    "iter_logical_lines",
    "stream_logical_lines",
    "Channel",
    # Config
    "CoverageConfig",
    "DEFAULT_CONFIG",
    "DEFAULT_MODULES",
    "DEFAULT_IGNORE_SET",
    # Models
    "ModuleSpec",
    "ParsedDeclaration",
    "ExtractedDeclaration",
    "MissingFunctionReport",
    "RunError",
    "CoverageResult",
    # Exceptions
    "CoverageError",
    "MissingBindingError",
    "CorpusReadError",
    "UnreadableHeaderError",
    "UnreadableSourceTreeError",
    "MissingModuleAssetsError",
    "ModuleHeaderNotFoundError",
    "ModuleSourceNotFoundError",
    "MalformedDeclarationError",
    "ConfigurationError",
    # Infrastructure
    "MetricsCollector",
    "ReportSink",
    "CollectingSink",
    "ConsoleSink",
    "deliver",
]
