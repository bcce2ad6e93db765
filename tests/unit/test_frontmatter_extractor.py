"""Unit tests for front-matter extraction."""

import pytest

from fm2schema.frontmatter import (
    Absent,
    DocumentFailure,
    FrontmatterData,
    FrontmatterExtractor,
    Present,
    normalize_value,
)


@pytest.fixture
def extractor():
    return FrontmatterExtractor()


class TestFrontmatterExtractor:
    """Test splitting documents into front matter and body."""

    def test_yaml_front_matter(self, extractor):
        """Test a typical YAML block."""
        content = "---\ntitle: Hello\ntags:\n  - a\n  - b\n---\n\nBody text\n"
        result = extractor.extract(content)
        assert isinstance(result, Present)
        assert result.front_matter == {"title": "Hello", "tags": ["a", "b"]}
        assert result.body.strip() == "Body text"

    def test_key_order_preserved(self, extractor):
        """Test that fields keep their declaration order."""
        result = extractor.extract("---\nz: 1\na: 2\nm: 3\n---\n")
        assert list(result.front_matter) == ["z", "a", "m"]

    def test_dates_normalized(self, extractor):
        """Test that YAML dates become ISO strings."""
        result = extractor.extract("---\ndate: 2024-01-02\n---\nx")
        assert result.front_matter == {"date": "2024-01-02"}

    def test_no_front_matter(self, extractor):
        """Test that plain Markdown is Absent with the original text."""
        content = "# Just a heading\n\nNo metadata here.\n"
        result = extractor.extract(content)
        assert isinstance(result, Absent)
        assert result.body == content
        assert result.reason is None

    def test_invalid_yaml_is_absent_with_reason(self, extractor):
        """Test that parse failures degrade to Absent."""
        content = "---\ntitle: [unclosed\n---\nbody\n"
        result = extractor.extract(content)
        assert isinstance(result, Absent)
        assert result.body == content
        assert result.reason.startswith("Invalid front matter")


class TestNormalization:
    """Test JSON-compatible normalization."""

    def test_nested_values(self):
        """Test that keys become strings and tuples become lists."""
        assert normalize_value({1: ("a", {"b": None})}) == {"1": ["a", {"b": None}]}


class TestDocumentTypes:
    """Test document value types."""

    def test_frontmatter_data_copy_is_independent(self):
        """Test that to_dict returns a deep copy."""
        data = FrontmatterData({"tags": ["a"]}, source="a.md")
        copied = data.to_dict()
        copied["tags"].append("b")
        assert data.get("tags") == ["a"]
        assert data.keys() == ["tags"]
        assert len(data) == 1

    def test_failure_string(self):
        """Test the failure summary line."""
        failure = DocumentFailure("a.md", "extract", "No front matter")
        assert str(failure) == "a.md (extract): No front matter"
