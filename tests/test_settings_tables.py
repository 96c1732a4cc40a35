"""
Configuration tests

Tests settings token helpers, environment overrides and lookup-table
loading and validation.
"""

import pytest
import tempfile
from pathlib import Path

from wikidistill.config import AppSettings, appsettings
from wikidistill.lib.tables import LookupTables, TableError


class TestSettings:
    """Test AppSettings"""

    def test_token_helpers(self):
        settings = AppSettings()
        assert settings.markerToken_make(5) == "\x00MARKER_5\x00"
        assert settings.markerIndex_extract("\x00MARKER_5\x00") == 5
        assert settings.markerIndex_extract("MARKER_5") is None
        assert settings.markerIndex_extract("\x00MARKER_x\x00") is None

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("WIKIDISTILL_EXPR_PRECISION", "6")
        monkeypatch.setenv("WIKIDISTILL_MAX_NESTING_ITERATIONS", "100")
        settings = AppSettings()
        assert settings.expr_precision == 6
        assert settings.max_nesting_iterations == 100

    def test_defaults(self):
        settings = AppSettings()
        assert settings.max_nesting_iterations == 50_000
        assert settings.expr_precision == 4


class TestDefaultTables:
    """Test the packaged lookup tables"""

    def test_load(self):
        tables = LookupTables.load()
        assert "REDIRECT" in tables.redirect_keywords
        assert tables.entities["amp"] == "&"
        assert tables.entities["nbsp"] == " "

    def test_marker_templates(self):
        tables = LookupTables.load()
        assert tables.markerTemplate_get("infobox person") == "INFOBOX"
        assert tables.markerTemplate_get("reflist") == "REFERENCES"
        assert tables.markerTemplate_get("foo") is None

    def test_lookups(self):
        tables = LookupTables.load()
        assert tables.templateAliases_get("convert") == ["cvt"]
        assert tables.languageName_get("FR") == "French"
        assert tables.namespaceNumber_get("Help") == 12
        assert tables.namespaceNumber_get("Help_talk") == 13
        assert tables.namespaceNumber_get("") == 0
        assert tables.namespaceNumber_get("Nonexistent") == 0


class TestTableErrors:
    """Test that broken table files raise TableError"""

    def test_missing_file(self):
        with pytest.raises(TableError, match="not found"):
            LookupTables.load("/nonexistent/lookup.yaml")

    def test_malformed_yaml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "lookup.yaml"
            path.write_text("redirect_keywords: [REDIRECT\n", encoding="utf-8")
            with pytest.raises(TableError, match="Failed to parse"):
                LookupTables.load(path)

    def test_missing_table(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "lookup.yaml"
            path.write_text("redirect_keywords: [REDIRECT]\n", encoding="utf-8")
            with pytest.raises(TableError, match="category_aliases"):
                LookupTables.load(path)

    def test_wrong_shape(self):
        with pytest.raises(TableError, match="must be a mapping"):
            LookupTables(["not", "a", "mapping"])

    def test_tables_path_setting(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "custom.yaml"
            path.write_text("{}\n", encoding="utf-8")
            monkeypatch.setattr(appsettings, "tables_path", str(path))
            with pytest.raises(TableError, match="redirect_keywords"):
                LookupTables.load()
