"""
Declaration matcher for macro-based C function declarations.

Recognises the single idiom used by the allegro headers:

    AL_FUNC(bool, al_install_keyboard, (void));
    ALLEGRO_FONT_FUNC(int, al_get_text_width, (const ALLEGRO_FONT *f, const char *str));

Matching is line-local: the input is one logical line as produced by the
reassembler, and nothing beyond the fixed anchors ``(``, ``, ``, ``, (`` and
``))`` is parsed.
"""

import re
from typing import Optional

from binding_coverage.config import DEFAULT_CONFIG
from binding_coverage.exceptions import ConfigurationError
from binding_coverage.models import ParsedDeclaration


class DeclarationPattern:
    """
    A macro token paired with the compiled pattern for its invocations.

    Usage:
        pattern = DeclarationPattern.compile("ALLEGRO_TTF_FUNC")
        decl = pattern.match("ALLEGRO_TTF_FUNC(bool, al_init_ttf_addon, (void));")
        decl.name  # 'al_init_ttf_addon'
    """

    __slots__ = ("macro", "regex")

    def __init__(self, macro: str, regex: "re.Pattern"):
        self.macro = macro
        self.regex = regex

    @classmethod
    def compile(cls, macro: str) -> "DeclarationPattern":
        if not macro:
            raise ConfigurationError("macro", "declaration macro token must not be empty")
        regex = re.compile(
            re.escape(macro)
            + r"\(([^,]*), "      # return type
            + r"([^,]*), "        # function name
            + r"\((.*)\)\)"       # parameter list
        )
        return cls(macro, regex)

    def match(self, line: str) -> Optional[ParsedDeclaration]:
        """Parse one logical line; None when it is not a declaration."""
        m = self.regex.search(line)
        if m is None:
            return None
        name = m.group(2).strip()
        if not name:
            return None
        return ParsedDeclaration(
            return_type=m.group(1).strip(),
            name=name,
            params=m.group(3).strip(),
        )

    def __eq__(self, other) -> bool:
        return isinstance(other, DeclarationPattern) and other.macro == self.macro

    def __hash__(self) -> int:
        return hash(self.macro)

    def __repr__(self) -> str:
        return f"DeclarationPattern({self.macro!r})"


# Pattern for declarations that belong to no module
GLOBAL_PATTERN = DeclarationPattern.compile(DEFAULT_CONFIG.global_macro)
