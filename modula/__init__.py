"""Modula CLI: publish and fetch directory-tree modules from a Modula backend."""

__version__ = "1.0.0"

from .client import ModulaAPIClient  # noqa: E402
from .config import Config, ConfigStore, MemoryConfigStore  # noqa: E402
from .errors import ModulaError, NotAuthenticatedError, TreeDepthError, TreeError  # noqa: E402
from .tree import DirectoryNode, FileNode, materialize, node_from_dict, serialize_directory  # noqa: E402

__all__ = [
    "__version__",
    "Config",
    "ConfigStore",
    "DirectoryNode",
    "FileNode",
    "MemoryConfigStore",
    "ModulaAPIClient",
    "ModulaError",
    "NotAuthenticatedError",
    "TreeDepthError",
    "TreeError",
    "materialize",
    "node_from_dict",
    "serialize_directory",
]
