"""
Integration tests for CoverageReconciler and the CLI.

Each test builds a throwaway header tree and binding package on disk:

    <tmp>/include/allegro5/...   header corpus
    <tmp>/allegro/...            binding corpus

Usage:
    pytest binding_coverage/test_coverage_reconciler.py
"""

import os
import sys
import errno
import logging
import tempfile
from pathlib import Path

import pytest

# Ensure the parent directory is in the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from binding_coverage.channels import Channel
from binding_coverage.cli import main
from binding_coverage.config import CoverageConfig
from binding_coverage.coverage_reconciler import CoverageReconciler
from binding_coverage.declaration_matcher import DeclarationPattern
from binding_coverage.exceptions import (
    MalformedDeclarationError,
    MissingModuleAssetsError,
    ModuleHeaderNotFoundError,
    ModuleSourceNotFoundError,
    UnreadableHeaderError,
    UnreadableSourceTreeError,
)
from binding_coverage.models import ModuleSpec

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


# ============================================================
# Test Helpers
# ============================================================

FONT = ModuleSpec(name="font", macro="ALLEGRO_FONT_FUNC")
COLOR = ModuleSpec(name="color", macro="ALLEGRO_COLOR_FUNC")
TTF = ModuleSpec(name="ttf", macro="ALLEGRO_TTF_FUNC", path="font/ttf")


class Corpus:
    """A temporary header tree plus binding package."""

    def __init__(self, base: Path):
        self.header_root = base / "include" / "allegro5"
        self.package_root = base / "allegro"
        self.header_root.mkdir(parents=True)
        self.package_root.mkdir(parents=True)

    def header(self, rel: str, text: str) -> Path:
        path = self.header_root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def source(self, rel: str, text: str) -> Path:
        path = self.package_root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def config(self, **overrides) -> CoverageConfig:
        kwargs = {
            "header_root": str(self.header_root),
            "package_root": str(self.package_root),
        }
        kwargs.update(overrides)
        return CoverageConfig(**kwargs)

    def run(self, modules=(), ignore_set=(), **overrides):
        reconciler = CoverageReconciler(self.config(**overrides), modules=modules, ignore_set=ignore_set)
        return reconciler.run()


@pytest.fixture
def corpus():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Corpus(Path(tmpdir))


# ============================================================
# Test 1: Core scenarios
# ============================================================

def test_undeclared_binding_is_reported(corpus):
    logger.info("--- Test 1: Scenarios ---")
    header = corpus.header("foo.h", "FUNC(void, al_foo, (int x));\n")
    result = corpus.run(global_macro="FUNC")
    assert len(result.reports) == 1
    report = result.reports[0]
    assert (report.name, report.return_type, report.params) == ("al_foo", "void", "int x")
    assert report.header == str(header)
    assert report.module == ""
    assert result.errors == ()
    assert not result.passed


def test_bound_function_is_not_reported(corpus):
    corpus.header("foo.h", "FUNC(void, al_foo, (int x));\n")
    corpus.source("foo.go", "func Foo(x int) { C.al_foo(C.int(x)) }\n")
    result = corpus.run(global_macro="FUNC")
    assert result.reports == ()
    assert result.passed


def test_multiline_declaration_reported_once(corpus):
    corpus.header("bar.h", "FUNC(void, al_bar,\n  (int x, int y));\n")
    result = corpus.run(global_macro="FUNC")
    assert [r.name for r in result.reports] == ["al_bar"]
    assert result.reports[0].params == "int x, int y"


def test_private_names_never_reported(corpus):
    corpus.header("priv.h", "AL_FUNC(void, _al_private, (void));\nAL_FUNC(int, al_public, (void));\n")
    assert [r.name for r in corpus.run().reports] == ["al_public"]

    corpus.source("priv.go", "C._al_private()\n")
    assert [r.name for r in corpus.run().reports] == ["al_public"]


def test_missing_module_source_skips_module(corpus):
    corpus.header("allegro_font.h", "ALLEGRO_FONT_FUNC(int, al_get_font_ascent, (const ALLEGRO_FONT *f));\n")
    corpus.header("allegro_color.h", "ALLEGRO_COLOR_FUNC(ALLEGRO_COLOR, al_color_name, (char const *name));\n")
    corpus.source("color/color.go", "package color\n")

    result = corpus.run(modules=(FONT, COLOR))
    assert len(result.errors) == 1
    err = result.errors[0]
    assert isinstance(err.error, ModuleSourceNotFoundError)
    assert isinstance(err.error, MissingModuleAssetsError)
    assert err.module == "font"
    assert result.reports_for("font") == []
    assert [r.name for r in result.reports_for("color")] == ["al_color_name"]
    assert result.reports_for("color")[0].render() == (
        "Module 'color' missing function 'al_color_name' "
        "[ALLEGRO_COLOR al_color_name(char const *name)]"
    )


def test_ignored_names_never_reported(corpus):
    corpus.header("file.h", "AL_FUNC(ALLEGRO_FILE *, al_fopen_interface, (const ALLEGRO_FILE_INTERFACE *vt));\n")
    result = corpus.run(ignore_set={"al_fopen_interface"})
    assert result.reports == ()
    assert result.passed
    logger.info("  PASS: All scenarios verified.")


# ============================================================
# Test 2: Global pass
# ============================================================

def test_global_pass_skips_internal_and_non_headers(corpus):
    logger.info("--- Test 2: Global pass ---")
    corpus.header("internal/aintern.h", "AL_FUNC(void, al_internal, (void));\n")
    corpus.header("notes.txt", "AL_FUNC(void, al_text, (void));\n")
    corpus.header("platform/alunix.h", "AL_FUNC(void, al_unix, (void));\n")
    result = corpus.run()
    assert [r.name for r in result.reports] == ["al_unix"]


def test_global_pass_reads_package_root_only(corpus):
    corpus.header("allegro.h", "AL_FUNC(void, al_foo, (void));\n")
    corpus.source("font/font.go", "C.al_foo()\n")
    result = corpus.run()
    assert [r.name for r in result.reports] == ["al_foo"]


def test_unreadable_global_source_aborts_run(corpus):
    corpus.header("allegro.h", "AL_FUNC(void, al_foo, (void));\n")
    corpus.header("allegro_font.h", "ALLEGRO_FONT_FUNC(void, al_f, (void));\n")
    config = corpus.config(package_root=str(corpus.package_root / "missing"))
    result = CoverageReconciler(config, modules=(FONT,), ignore_set=()).run()
    assert result.reports == ()
    assert len(result.errors) == 1
    assert isinstance(result.errors[0].error, UnreadableSourceTreeError)


def test_unreadable_header_is_skipped(corpus):
    corpus.header("a.h", "AL_FUNC(void, al_a, (void));\n")
    os.symlink(str(corpus.header_root / "gone.h.orig"), str(corpus.header_root / "b.h"))
    corpus.header("c.h", "AL_FUNC(void, al_c, (void));\n")
    result = corpus.run()
    assert [r.name for r in result.reports] == ["al_a", "al_c"]
    assert len(result.errors) == 1
    assert isinstance(result.errors[0].error, UnreadableHeaderError)


def test_missing_header_root_fails_run(corpus):
    missing = str(corpus.header_root / "nope")
    result = corpus.run(header_root=missing)
    assert not result.passed
    assert result.reports == ()
    assert len(result.errors) == 1
    err = result.errors[0].error
    assert isinstance(err, UnreadableHeaderError)
    assert err.details["path"] == missing
    assert result.errors[0].render() == f"Error: can't read header file \"{missing}\": no such directory"


def test_missing_header_root_still_runs_module_pass(corpus):
    corpus.source("font/font.go", "")
    result = corpus.run(modules=(FONT,), header_root=str(corpus.header_root / "nope"))
    assert [type(e.error) for e in result.errors] == [UnreadableHeaderError, ModuleHeaderNotFoundError]


def test_unlistable_header_directory_is_reported(corpus, monkeypatch):
    corpus.header("a.h", "AL_FUNC(void, al_a, (void));\n")
    corpus.header("locked/b.h", "AL_FUNC(void, al_b, (void));\n")
    corpus.header("z/c.h", "AL_FUNC(void, al_c, (void));\n")
    locked = str(corpus.header_root / "locked")
    real_scandir = os.scandir

    def scandir(path="."):
        if path == locked:
            raise PermissionError(errno.EACCES, "Permission denied", locked)
        return real_scandir(path)

    with monkeypatch.context() as m:
        m.setattr(os, "scandir", scandir)
        result = corpus.run()
    assert [r.name for r in result.reports] == ["al_a", "al_c"]
    assert len(result.errors) == 1
    err = result.errors[0].error
    assert isinstance(err, UnreadableHeaderError)
    assert err.details["path"] == locked
    assert not result.passed


def test_malformed_declaration_reported_per_header(corpus):
    corpus.header("a.h", "AL_FUNC(void, al_ok, (void));\nAL_FUNC(void, al_broken,\n  (int x)\n")
    corpus.header("b.h", "AL_FUNC(void, al_b, (void));\n")
    result = corpus.run()
    assert [r.name for r in result.reports] == ["al_ok", "al_b"]
    assert len(result.errors) == 1
    err = result.errors[0].error
    assert isinstance(err, MalformedDeclarationError)
    assert err.details["line_number"] == 2
    logger.info("  PASS: Global pass verified.")


# ============================================================
# Test 3: Module pass
# ============================================================

def test_missing_module_header(corpus):
    logger.info("--- Test 3: Module pass ---")
    corpus.source("font/font.go", "")
    result = corpus.run(modules=(FONT,))
    assert len(result.errors) == 1
    err = result.errors[0].error
    assert isinstance(err, ModuleHeaderNotFoundError)
    assert str(err) == f"Module header not found at '{corpus.header_root / 'allegro_font.h'}'"


def test_module_path_override_and_flat_source(corpus):
    corpus.header("allegro_ttf.h", (
        "ALLEGRO_TTF_FUNC(bool, al_init_ttf_addon, (void));\n"
        "ALLEGRO_TTF_FUNC(ALLEGRO_FONT *, al_load_ttf_font, (char const *filename, int size, int flags));\n"
    ))
    corpus.source("font/ttf/ttf.go", "C.al_init_ttf_addon()\n")
    corpus.source("font/ttf/extra/more.go", "C.al_load_ttf_font()\n")
    result = corpus.run(modules=(TTF,))
    assert result.errors == ()
    assert [r.name for r in result.reports] == ["al_load_ttf_font"]
    assert result.reports[0].module == "ttf"


def test_module_source_read_failure_continues(corpus):
    corpus.header("allegro_font.h", "ALLEGRO_FONT_FUNC(void, al_f, (void));\n")
    corpus.header("allegro_color.h", "ALLEGRO_COLOR_FUNC(void, al_c, (void));\n")
    corpus.source("font/font.go", "C.al_f()\n")
    os.symlink(str(corpus.package_root / "nowhere.go"), str(corpus.package_root / "font" / "z.go"))
    corpus.source("color/color.go", "")
    result = corpus.run(modules=(FONT, COLOR))
    assert [e.module for e in result.errors] == ["font"]
    assert isinstance(result.errors[0].error, UnreadableSourceTreeError)
    assert [r.name for r in result.reports] == ["al_c"]


def test_module_macro_not_applied_globally(corpus):
    corpus.header("allegro_font.h", "ALLEGRO_FONT_FUNC(void, al_draw_text, (void));\n")
    corpus.source("font/font.go", "")
    result = corpus.run(modules=(FONT,))
    assert [(r.name, r.module) for r in result.reports] == [("al_draw_text", "font")]
    logger.info("  PASS: Module pass verified.")


# ============================================================
# Test 4: Pipeline behaviour
# ============================================================

def test_run_is_idempotent(corpus):
    logger.info("--- Test 4: Pipeline ---")
    for i in range(20):
        corpus.header(f"h{i:02d}.h", "\n".join(
            f"AL_FUNC(void, al_h{i}_{j},\n   (int a, int b));" for j in range(30)
        ))
    corpus.header("allegro_font.h", "ALLEGRO_FONT_FUNC(void, al_f, (void));\n")
    reconciler = CoverageReconciler(corpus.config(), modules=(FONT, COLOR), ignore_set={"al_h3_4"})
    first = reconciler.run()
    second = reconciler.run()
    assert first.reports == second.reports
    assert first.rendered_lines() == second.rendered_lines()
    assert len(first.reports) == 20 * 30 - 1
    assert [r.name for r in first.reports[:2]] == ["al_h0_0", "al_h0_1"]


def test_scan_closes_channels_on_fatal_error(corpus):
    config = corpus.config(package_root=str(corpus.package_root / "missing"))
    reconciler = CoverageReconciler(config, modules=(), ignore_set=())
    reports, errors = Channel(name="reports"), Channel(name="errors")
    reconciler.scan(reports, errors)
    assert reports.closed and errors.closed
    assert reports.drain() == []
    assert len(errors.drain()) == 1


def test_run_metrics_time_each_module(corpus):
    corpus.header("allegro.h", "AL_FUNC(void, al_foo, (void));\n")
    corpus.header("allegro_font.h", "ALLEGRO_FONT_FUNC(void, al_f, (void));\n")
    corpus.source("font/font.go", "C.al_f()\n")
    result = corpus.run(modules=(FONT, COLOR))
    metrics = result.metrics
    assert metrics["global_pass_ms"] is not None
    assert list(metrics["module_pass_ms"]) == ["font", "color"]
    # allegro.h and allegro_font.h globally, allegro_font.h again for its module
    assert metrics["counters"]["headers.scanned"] == 3
    assert metrics["counters"]["declarations.missing"] == 1
    assert metrics["counters"]["declarations.bound"] == 1
    assert metrics["errors"] == {"ModuleHeaderNotFoundError": 1}


def test_extract_and_find_missing_directly():
    reconciler = CoverageReconciler(CoverageConfig(), modules=(), ignore_set={"al_skip"})
    pattern = DeclarationPattern.compile("FUNC")
    text = "FUNC(void, al_a, (void));\nFUNC(void, _al_b, (void));\nFUNC(void, al_skip, (void));\nFUNC(int, al_c,\n (int x));"
    decls = list(reconciler.extract_declarations(text, pattern, "x.h", "mod"))
    assert [d.name for d in decls] == ["al_a", "al_skip", "al_c"]
    assert all(d.module == "mod" for d in decls)
    missing = list(reconciler.find_missing(decls, "C.al_a()"))
    assert [m.name for m in missing] == ["al_c"]
    assert reconciler.metrics.get_counter("declarations.private") == 1
    assert reconciler.metrics.get_counter("declarations.ignored") == 1
    logger.info("  PASS: Pipeline verified.")


# ============================================================
# Test 5: CLI
# ============================================================

def test_cli_exit_status(corpus):
    logger.info("--- Test 5: CLI ---")
    corpus.header("allegro.h", "AL_FUNC(void, al_foo, (void));\n")
    args = ["--header-root", str(corpus.header_root), "--package-root", str(corpus.package_root),
            "--skip-modules", "--no-summary"]
    assert main(args) == 1

    corpus.source("allegro.go", "C.al_foo()\n")
    assert main(args) == 0

    # default module table: every module header is missing
    assert main(args[:-2]) == 1

    # nothing scanned is a failure, not a pass
    missing = ["--header-root", str(corpus.header_root / "nope"), "--package-root", str(corpus.package_root),
               "--skip-modules", "--no-summary"]
    assert main(missing) == 1
    logger.info("  PASS: CLI verified.")
