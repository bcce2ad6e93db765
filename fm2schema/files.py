"""File access collaborators.

The pipeline never touches the file system directly; it reads schemas,
templates and Markdown documents through a ``FileReader``. Failures are
reported as ``FileAccessError`` with a kind of ``not_found``,
``permission_denied`` or ``read_error``.
"""

from pathlib import Path
from typing import Protocol

from .core.exceptions import FileAccessError


class FileReader(Protocol):
    """Reads text files for the pipeline."""

    def read(self, path: str | Path) -> str:
        """Return the file's text or raise FileAccessError."""
        ...

    def exists(self, path: str | Path) -> bool:
        """Check whether the path names a readable file."""
        ...


class LocalFileReader:
    """FileReader backed by the local file system."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def read(self, path: str | Path) -> str:
        file_path = Path(path)
        try:
            return file_path.read_text(encoding=self.encoding)
        except FileNotFoundError as e:
            raise FileAccessError(str(path), FileAccessError.NOT_FOUND, e) from e
        except IsADirectoryError as e:
            raise FileAccessError(str(path), FileAccessError.READ_ERROR, e) from e
        except PermissionError as e:
            raise FileAccessError(
                str(path), FileAccessError.PERMISSION_DENIED, e
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError(str(path), FileAccessError.READ_ERROR, e) from e

    def exists(self, path: str | Path) -> bool:
        return Path(path).is_file()


class InMemoryFileReader:
    """FileReader serving content from a dictionary.

    Useful for tests and for callers that already hold document text.
    """

    def __init__(self, files: dict[str, str] | None = None):
        self.files: dict[str, str] = {
            str(Path(k)): v for k, v in (files or {}).items()
        }
        self.reads: list[str] = []

    def add(self, path: str | Path, content: str) -> None:
        """Register content under a path."""
        self.files[str(Path(path))] = content

    def read(self, path: str | Path) -> str:
        key = str(Path(path))
        self.reads.append(key)
        if key not in self.files:
            raise FileAccessError(key, FileAccessError.NOT_FOUND)
        return self.files[key]

    def exists(self, path: str | Path) -> bool:
        return str(Path(path)) in self.files


def discover_markdown_files(inputs: list[str | Path]) -> list[Path]:
    """Expand input paths into a sorted, de-duplicated list of Markdown files.

    Directories are searched recursively for ``*.md`` and ``*.markdown``;
    plain file paths are kept as given.
    """
    found: list[Path] = []
    seen: set[Path] = set()
    for item in inputs:
        path = Path(item)
        if path.is_dir():
            candidates = sorted(
                p
                for pattern in ("*.md", "*.markdown")
                for p in path.rglob(pattern)
                if p.is_file()
            )
        else:
            candidates = [path]
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                found.append(candidate)
    return found
