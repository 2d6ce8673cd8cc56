"""
Centralized configuration for the binding_coverage package.

All corpus locations, file-selection rules and matching tokens are defined
here as a single dataclass so the reconciler never reaches for globals.
"""

import os
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass
class CoverageConfig:
    """
    Configuration object for a coverage run.
    Instantiate with defaults or override specific values.

    Example:
        config = CoverageConfig(package_root="/src/allegro")
        config = CoverageConfig.from_env()
    """

    # --- Corpus Locations ---
    header_root: str = os.path.join("/", "usr", "include", "allegro5")
    package_root: str = field(default_factory=lambda: os.path.join(os.getcwd(), "allegro"))

    # --- File Selection ---
    header_suffix: str = ".h"
    header_prefix: str = "allegro_"
    source_suffixes: Tuple[str, ...] = (".go",)
    skip_dir_names: frozenset = field(default_factory=lambda: frozenset({"internal"}))
    encoding: str = "utf-8"

    # --- Matching ---
    global_macro: str = "AL_FUNC"
    foreign_call_marker: str = "C."

    # --- Pipeline ---
    line_queue_size: int = 256  # Bound on the reassembler -> matcher queue

    @classmethod
    def from_env(cls) -> "CoverageConfig":
        """
        Create a configuration from environment variables.
        Environment variables are prefixed with BINDCOV_.
        """
        kwargs = {}

        env_map = {
            "BINDCOV_HEADER_ROOT": "header_root",
            "BINDCOV_PACKAGE_ROOT": "package_root",
            "BINDCOV_HEADER_PREFIX": "header_prefix",
            "BINDCOV_GLOBAL_MACRO": "global_macro",
            "BINDCOV_MARKER": "foreign_call_marker",
            "BINDCOV_ENCODING": "encoding",
            "BINDCOV_LINE_QUEUE_SIZE": ("line_queue_size", int),
            "BINDCOV_SOURCE_SUFFIXES": ("source_suffixes", _split_list),
        }

        for env_key, field_info in env_map.items():
            val = os.environ.get(env_key)
            if val is None:
                continue

            if isinstance(field_info, str):
                kwargs[field_info] = val
            else:
                field_name, converter = field_info
                try:
                    kwargs[field_name] = converter(val)
                except (ValueError, TypeError):
                    pass

        return cls(**kwargs)

    def validate(self) -> List[str]:
        """
        Validate configuration values and return list of warnings.
        Returns empty list if all values are valid.
        """
        warnings = []

        if not self.global_macro:
            warnings.append("global_macro must not be empty")
        if not self.foreign_call_marker:
            warnings.append("foreign_call_marker is empty, every declared name will count as bound")
        if not self.source_suffixes:
            warnings.append("source_suffixes is empty, no binding source will be read")
        if not self.header_suffix:
            warnings.append("header_suffix is empty, every file under header_root will be scanned")
        if self.line_queue_size < 1:
            warnings.append(f"line_queue_size must be >= 1, got {self.line_queue_size}")

        return warnings


def _split_list(value: str) -> Tuple[str, ...]:
    items = tuple(v.strip() for v in value.split(",") if v.strip())
    if not items:
        raise ValueError("empty list")
    return items


# Module-level default configuration instance
DEFAULT_CONFIG = CoverageConfig()
