"""
Custom exception hierarchy for the binding_coverage package.

Every failure the coverage run can hit is expressed as a typed exception
carrying a ``details`` dict, so the reporting sink can render an actionable
message and callers can tell per-file problems apart from fatal ones.
"""


class CoverageError(Exception):
    """Base exception for all binding_coverage errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}

    @property
    def module(self) -> str:
        """Module the error belongs to, or "" for the global pass."""
        return self.details.get("module", "")


# --- Coverage Findings ---

class MissingBindingError(CoverageError):
    """A declared function has no foreign-call reference in the binding source."""

    def __init__(self, name: str, header: str, module: str = ""):
        if module:
            msg = f"Module '{module}' missing function '{name}'"
        else:
            msg = f"Missing allegro function '{name}' in file '{header}'"
        super().__init__(
            msg,
            details={"name": name, "header": header, "module": module}
        )


# --- Corpus Read Errors ---

class CorpusReadError(CoverageError):
    """Base exception for header or binding-source read failures."""
    pass


class UnreadableHeaderError(CorpusReadError):
    """A header file, or a directory of the header tree, could not be read."""

    def __init__(self, path: str, reason: str = "Unknown", module: str = ""):
        super().__init__(
            f"can't read header file \"{path}\": {reason}",
            details={"path": path, "reason": reason, "module": module}
        )


class UnreadableSourceTreeError(CorpusReadError):
    """The binding-source tree for a pass could not be read in full."""

    def __init__(self, path: str, reason: str = "Unknown", module: str = ""):
        super().__init__(
            f"can't read binding source file \"{path}\": {reason}",
            details={"path": path, "reason": reason, "module": module}
        )


# --- Module Errors ---

class MissingModuleAssetsError(CoverageError):
    """A module's header file or source subdirectory does not exist."""

    def __init__(self, module: str, path: str, message: str = None):
        super().__init__(
            message or f"Module '{module}' assets not found at '{path}'",
            details={"module": module, "path": path}
        )


class ModuleHeaderNotFoundError(MissingModuleAssetsError):
    """The module's header file is absent from the header root."""

    def __init__(self, module: str, path: str):
        super().__init__(module, path, f"Module header not found at '{path}'")


class ModuleSourceNotFoundError(MissingModuleAssetsError):
    """The module's source subdirectory is absent from the package root."""

    def __init__(self, module: str, path: str):
        super().__init__(module, path, f"Source not found at '{path}'")


# --- Parse Errors ---

class MalformedDeclarationError(CoverageError):
    """A declaration macro invocation never reached its terminating ';'."""

    def __init__(self, source: str, line_number: int, macro: str, module: str = ""):
        location = f"'{source}' line {line_number}" if source else f"line {line_number}"
        super().__init__(
            f"Unterminated {macro} declaration starting at {location}",
            details={
                "source": source,
                "line_number": line_number,
                "macro": macro,
                "module": module,
            }
        )


# --- Configuration Errors ---

class ConfigurationError(CoverageError):
    """Configuration value is invalid."""

    def __init__(self, field: str, message: str):
        super().__init__(
            f"Configuration error for '{field}': {message}",
            details={"field": field, "message": message}
        )
