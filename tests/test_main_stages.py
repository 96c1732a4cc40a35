"""
CLI pipeline stage tests

Tests the ProgramState stages of the command-line tool on a temporary
directory of page files.
"""

import pytest
import tempfile
from pathlib import Path

from wikidistill.__main__ import (
    articles_convert,
    env_check,
    options_build,
    results_write,
    sources_read,
    title_fromPath,
)
from wikidistill.models import MarkerType, ProgramState, pipeline


def pages_write(inputdir: Path) -> None:
    (inputdir / "Albert_Einstein.wiki").write_text(
        "'''{{PAGENAME}}''' was a [[physicist]].\n[[Category:Physicists]]\n", encoding="utf-8"
    )
    (inputdir / "Einstein.wiki").write_text("#REDIRECT [[Albert Einstein]]\n", encoding="utf-8")
    (inputdir / "notes.txt").write_text("not a page", encoding="utf-8")


class TestHelpers:
    """Test title and option helpers"""

    def test_title_from_path(self):
        assert title_fromPath(Path("pages/Albert_Einstein.wiki")) == "Albert Einstein"

    def test_options_build(self):
        state = ProgramState(dumpDate="2024-06-15", markers="math", noTemplates=True)
        options = options_build(state)
        assert options.dump_date.year == 2024
        assert options.enabled_markers == {MarkerType.MATH}
        assert not options.expand_templates


class TestPipeline:
    """Test the stages end to end"""

    def test_conversion(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            inputdir = Path(tmpdir) / "in"
            outputdir = Path(tmpdir) / "out"
            inputdir.mkdir()
            pages_write(inputdir)

            state = ProgramState(inputdir=inputdir, outputdir=outputdir, dumpDate="2024-06-15")
            final = pipeline(state, env_check, sources_read, articles_convert, results_write)

            assert final.convertResult == {"files_written": 2, "redirects": 1, "exhausted": []}
            assert (outputdir / "Albert_Einstein.txt").read_text(encoding="utf-8") == (
                "Albert Einstein was a physicist.\n\nCATEGORIES: Physicists\n"
            )
            assert (outputdir / "Einstein.txt").read_text(encoding="utf-8") == (
                "REDIRECT: Albert Einstein\n"
            )
            assert not (outputdir / "notes.txt").exists()

    def test_no_categories(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            inputdir = Path(tmpdir) / "in"
            outputdir = Path(tmpdir) / "out"
            inputdir.mkdir()
            pages_write(inputdir)

            state = ProgramState(inputdir=inputdir, outputdir=outputdir, noCategories=True)
            pipeline(state, env_check, sources_read, articles_convert, results_write)

            text = (outputdir / "Albert_Einstein.txt").read_text(encoding="utf-8")
            assert "CATEGORIES" not in text

    def test_stage_does_not_mutate_input(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            state = ProgramState(inputdir=Path(tmpdir), outputdir=Path(tmpdir) / "out")
            checked = env_check(state)
            assert checked.envOK
            assert not state.envOK


class TestEnvCheck:
    """Test option validation"""

    def test_missing_inputdir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            state = ProgramState(inputdir=Path(tmpdir) / "missing", outputdir=Path(tmpdir) / "out")
            with pytest.raises(SystemExit):
                env_check(state)

    def test_bad_dump_date(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            state = ProgramState(inputdir=Path(tmpdir), outputdir=Path(tmpdir) / "out", dumpDate="15/06/2024")
            with pytest.raises(SystemExit):
                env_check(state)

    def test_bad_markers(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            state = ProgramState(inputdir=Path(tmpdir), outputdir=Path(tmpdir) / "out", markers="math,bogus")
            with pytest.raises(SystemExit):
                env_check(state)
