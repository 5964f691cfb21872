"""
Tests for slug generation and validation
"""
import re

import pytest

from marketplace.core.slug import generate_slug, is_valid_slug


@pytest.mark.unit
class TestGenerateSlug:

    def test_punctuation_is_stripped(self):
        slug = generate_slug("Men's & Boys' Wear!!")
        assert slug == "mens-boys-wear"
        assert re.fullmatch(r"[a-z0-9-]+", slug)
        assert not slug.startswith("-") and not slug.endswith("-")
        assert "--" not in slug

    def test_deterministic(self):
        assert generate_slug("Industrial Equipment") == generate_slug("Industrial Equipment")

    @pytest.mark.parametrize("name,expected", [
        ("Office Supplies", "office-supplies"),
        ("  Leading and trailing  ", "leading-and-trailing"),
        ("Pumps -- Compressors", "pumps-compressors"),
        ("-Already-Hyphenated-", "already-hyphenated"),
        ("Tab\tand\nnewline", "tab-and-newline"),
        ("3D Printers 2024", "3d-printers-2024"),
    ])
    def test_examples(self, name, expected):
        assert generate_slug(name) == expected

    def test_non_latin_only_name_gives_empty_slug(self):
        assert generate_slug("מטבח") == ""
        assert generate_slug("!!!") == ""

    def test_generated_slugs_are_valid(self):
        for name in ["Men's & Boys' Wear!!", "A  B", "x-y-z", "Électronique 2"]:
            slug = generate_slug(name)
            if slug:
                assert is_valid_slug(slug)


@pytest.mark.unit
class TestIsValidSlug:

    @pytest.mark.parametrize("slug", ["a", "office-supplies", "3d-printers-2024"])
    def test_valid(self, slug):
        assert is_valid_slug(slug)

    @pytest.mark.parametrize("slug", ["", "-a", "a-", "a--b", "Upper", "with space", "under_score"])
    def test_invalid(self, slug):
        assert not is_valid_slug(slug)
