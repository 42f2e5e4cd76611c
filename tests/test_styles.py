"""Tests for the style catalog and prompt resolution."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from photo_restyle.core.exceptions import ConfigurationError, UnknownStyleError, ValidationError
from photo_restyle.styles import DEFAULT_STYLES, StyleCatalog

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def catalog() -> StyleCatalog:
    return StyleCatalog({"og-gigachad": "P-gigachad", "laser": "P-laser"})


class TestResolve:
    """Resolution order: catalog key, raw style, prompt field."""

    def test_catalog_key_wins(self, catalog: StyleCatalog) -> None:
        resolved = catalog.resolve("og-gigachad", "ignored prompt")

        assert resolved.text == "P-gigachad"
        assert resolved.source == "catalog"
        assert resolved.style == "og-gigachad"

    def test_unknown_style_is_used_verbatim(self, catalog: StyleCatalog) -> None:
        """A style outside the catalog is a raw prompt."""
        resolved = catalog.resolve("freeform text", None)

        assert resolved.text == "freeform text"
        assert resolved.source == "raw-style"
        assert resolved.style is None

    def test_raw_style_beats_prompt_field(self, catalog: StyleCatalog) -> None:
        assert catalog.resolve("freeform text", "other").text == "freeform text"

    def test_prompt_field_used_without_style(self, catalog: StyleCatalog) -> None:
        resolved = catalog.resolve(None, "make it purple")

        assert resolved.text == "make it purple"
        assert resolved.source == "prompt"

    def test_prompt_field_used_when_style_blank(self, catalog: StyleCatalog) -> None:
        assert catalog.resolve("   ", "make it purple").text == "make it purple"

    def test_neither_style_nor_prompt(self, catalog: StyleCatalog) -> None:
        with pytest.raises(ValidationError):
            catalog.resolve(None, None)

    def test_empty_strings_count_as_missing(self, catalog: StyleCatalog) -> None:
        with pytest.raises(ValidationError) as exc_info:
            catalog.resolve("", "")
        assert not isinstance(exc_info.value, UnknownStyleError)

    def test_blank_style_without_prompt(self, catalog: StyleCatalog) -> None:
        """A supplied but unusable style is an unknown style."""
        with pytest.raises(UnknownStyleError) as exc_info:
            catalog.resolve("   ", None)
        assert exc_info.value.style == "   "

    def test_raw_prompts_disabled(self, catalog: StyleCatalog) -> None:
        with pytest.raises(UnknownStyleError):
            catalog.resolve("freeform text", None, allow_raw=False)

    def test_raw_prompts_disabled_falls_back_to_prompt(self, catalog: StyleCatalog) -> None:
        resolved = catalog.resolve("freeform text", "fallback", allow_raw=False)
        assert resolved.text == "fallback"


class TestLoad:
    """Tests for StyleCatalog.load."""

    def test_defaults_without_path(self) -> None:
        catalog = StyleCatalog.load()

        assert set(catalog) == set(DEFAULT_STYLES)
        assert "og-gigachad" in catalog

    def test_loads_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "styles.json"
        path.write_text(json.dumps({"noir": "Film noir"}), encoding="utf-8")

        catalog = StyleCatalog.load(path)

        assert dict(catalog) == {"noir": "Film noir"}

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "styles.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            StyleCatalog.load(path)

    def test_non_string_prompt(self, tmp_path: Path) -> None:
        path = tmp_path / "styles.json"
        path.write_text(json.dumps({"noir": 3}), encoding="utf-8")

        with pytest.raises(ConfigurationError):
            StyleCatalog.load(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            StyleCatalog.load(tmp_path / "absent.json")


def test_catalog_is_immutable() -> None:
    source = {"a": "A"}
    catalog = StyleCatalog(source)
    source["b"] = "B"

    assert "b" not in catalog
    with pytest.raises(TypeError):
        catalog["c"] = "C"  # type: ignore[index]
