"""
Tests for slug generation.
"""
import pytest
from bookshop_directory.slugs import slugify, canonical_entity_path, place_name_from_slug

NAMES = [
    "Powell's Books",
    "  The  Book -- Nook",
    "Café Olé",
    "under_score shop",
    "---",
    "A & B Booksellers, Inc.",
    "Books\tand\nMore",
    "123 Main St. Books",
    "",
]


class TestSlugify:
    """Test cases for slugify."""

    @pytest.mark.parametrize('name,expected', [
        ("Powell's Books", 'powells-books'),
        ("  The  Book -- Nook", 'the-book-nook'),
        ("A & B Booksellers, Inc.", 'a-b-booksellers-inc'),
        ("under_score shop", 'under_score-shop'),
        ("Books\tand\nMore", 'books-and-more'),
        ("123 Main St. Books", '123-main-st-books'),
    ])
    def test_examples(self, name, expected):
        assert slugify(name) == expected

    def test_non_ascii_letters_are_dropped(self):
        """Only ASCII word characters survive."""
        assert slugify("Café Olé") == 'caf-ol'

    @pytest.mark.parametrize('value', [None, '', 42, ['a'], '---', '!!!'])
    def test_degenerate_input_yields_empty_string(self, value):
        assert slugify(value) == ''

    @pytest.mark.parametrize('name', NAMES)
    def test_idempotent(self, name):
        once = slugify(name)
        assert slugify(once) == once

    @pytest.mark.parametrize('name', NAMES)
    def test_deterministic(self, name):
        assert len({slugify(name) for _ in range(5)}) == 1

    def test_output_alphabet(self):
        for name in NAMES:
            slug = slugify(name)
            assert all(c.isascii() and (c.isalnum() or c in '-_') for c in slug)
            assert not slug.startswith('-') and not slug.endswith('-')
            assert '--' not in slug


class TestSlugHelpers:
    """Test cases for canonical paths and place names."""

    def test_canonical_entity_path(self):
        assert canonical_entity_path('listing', "Powell's Books") == '/listing/powells-books'

    def test_canonical_entity_path_without_slug(self):
        assert canonical_entity_path('listing', '!!!') == ''

    def test_place_name_from_slug(self):
        assert place_name_from_slug('los-angeles') == 'Los Angeles'
        assert place_name_from_slug('portland') == 'Portland'
        assert place_name_from_slug('st--louis') == 'St Louis'
        assert place_name_from_slug('') == ''
