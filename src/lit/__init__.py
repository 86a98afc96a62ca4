"""lit: lightweight issue tracker backed by a single outline document."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("lit-issues")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from lit.core import IssueStore
from lit.editing import EditSession

__all__ = ["EditSession", "IssueStore", "__version__"]
