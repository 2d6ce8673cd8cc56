"""
Structured data models for the binding_coverage package.

Defines the module table entries, the records flowing through the
header -> declaration -> report pipeline, and the aggregated run result.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from binding_coverage.exceptions import CoverageError, MissingBindingError


# --- Module Table ---

@dataclass(frozen=True)
class ModuleSpec:
    """
    One binding module: a group of native functions declared with a shared
    macro, living in ``allegro_<name>.h`` and bound in ``<package_root>/<name>``.

    ``header`` and ``path`` override the derived header segment and source
    subdirectory respectively.
    """
    name: str
    macro: str
    header: str = ""
    path: str = ""

    def header_file_name(self, prefix: str = "allegro_", suffix: str = ".h") -> str:
        """File name of the module header relative to the header root."""
        return f"{prefix}{self.header or self.name}{suffix}"

    @property
    def source_subdirectory(self) -> str:
        """Binding-source subdirectory relative to the package root."""
        return self.path or self.name


# --- Pipeline Records ---

@dataclass(frozen=True)
class ParsedDeclaration:
    """Fields captured from one logical line by a DeclarationPattern."""
    return_type: str
    name: str
    params: str


@dataclass(frozen=True)
class ExtractedDeclaration:
    """A declaration found in a header, tagged with where it came from."""
    name: str
    return_type: str
    params: str
    header: str
    module: str = ""

    @property
    def is_private(self) -> bool:
        return self.name.startswith("_")


@dataclass(frozen=True)
class MissingFunctionReport:
    """A declared function with no reference in the binding source."""
    name: str
    return_type: str
    params: str
    header: str
    module: str = ""

    @classmethod
    def from_declaration(cls, decl: ExtractedDeclaration) -> "MissingFunctionReport":
        return cls(
            name=decl.name,
            return_type=decl.return_type,
            params=decl.params,
            header=decl.header,
            module=decl.module,
        )

    def to_error(self) -> MissingBindingError:
        return MissingBindingError(self.name, self.header, self.module)

    @property
    def signature(self) -> str:
        """C-style signature, e.g. ``void al_foo(int x)``."""
        return f"{self.return_type} {self.name}({self.params})"

    def render(self) -> str:
        """Human-readable failure line."""
        if not self.module:
            return f"Missing allegro function '{self.name}' in file '{self.header}'"
        return f"Module '{self.module}' missing function '{self.name}' [{self.signature}]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.return_type,
            "params": self.params,
            "header": self.header,
            "module": self.module,
        }


@dataclass(frozen=True)
class RunError:
    """A single non-report failure raised during a run."""
    error: CoverageError
    module: str = ""

    @property
    def message(self) -> str:
        return str(self.error)

    @property
    def kind(self) -> str:
        return type(self.error).__name__

    def render(self) -> str:
        return f"Error: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "module": self.module,
            "details": dict(self.error.details),
        }


# --- Result ---

@dataclass
class CoverageResult:
    """Everything a coverage run produced, in channel order."""
    reports: Tuple[MissingFunctionReport, ...] = ()
    errors: Tuple[RunError, ...] = ()
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        """A run passes when nothing was reported and nothing failed."""
        return not self.reports and not self.errors

    def reports_for(self, module: Optional[str]) -> List[MissingFunctionReport]:
        """Reports belonging to one module ("" for the global pass)."""
        return [r for r in self.reports if r.module == module]

    def errors_of(self, error_type: type) -> List[RunError]:
        return [e for e in self.errors if isinstance(e.error, error_type)]

    def rendered_lines(self) -> List[str]:
        """Failure lines, reports first, then errors."""
        return [r.render() for r in self.reports] + [e.render() for e in self.errors]

    def summary(self) -> Dict[str, Any]:
        modules = sorted({r.module for r in self.reports if r.module})
        return {
            "passed": self.passed,
            "missing_functions": len(self.reports),
            "global_missing": len(self.reports_for("")),
            "modules_with_missing": modules,
            "errors": len(self.errors),
        }

    def raise_for_failures(self) -> None:
        """
        Raise the first failure of the run, if any.

        Raises:
            MissingBindingError: for the first missing-function report.
            CoverageError: the first run error, when nothing was reported.
        """
        if self.reports:
            raise self.reports[0].to_error()
        if self.errors:
            raise self.errors[0].error
