"""Test the main package initialization."""


def test_import_main_package() -> None:
    """Test that the main package can be imported without errors."""
    import fm2schema

    assert fm2schema.__version__ == "0.1.0"


class TestPackageStructure:
    """Test the package structure and imports."""

    def test_core_module_import(self) -> None:
        """Test that core module can be imported."""
        from fm2schema import core  # noqa: F401

    def test_cli_module_import(self) -> None:
        """Test that CLI module can be imported."""
        from fm2schema import cli  # noqa: F401

    def test_directives_module_import(self) -> None:
        """Test that directives module can be imported."""
        from fm2schema import directives  # noqa: F401

    def test_pipeline_module_import(self) -> None:
        """Test that pipeline module can be imported."""
        from fm2schema import pipeline  # noqa: F401

    def test_templates_module_import(self) -> None:
        """Test that templates module can be imported."""
        from fm2schema import templates  # noqa: F401

    def test_public_names(self) -> None:
        """Test the names exported at the package root."""
        import fm2schema

        for name in fm2schema.__all__:
            assert hasattr(fm2schema, name)
