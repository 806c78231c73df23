"""
Directory tree nodes exchanged with the Modula backend.

A module's content travels as nested nodes: files carry their text content,
directories carry their ordered children. ``serialize_directory`` builds the
tree from a local directory and ``materialize`` writes one back to disk.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from .errors import TreeDepthError, TreeError

logger = logging.getLogger(__name__)


FILE = "file"
DIRECTORY = "directory"

# Levels below the root; bounds symlink loops and pathological nesting
MAX_DEPTH = 64


@dataclass
class FileNode:
    """A file and its full text content."""
    name: str
    content: str = ""

    type = FILE

    def to_dict(self) -> Dict[str, Any]:
        return {"type": FILE, "name": self.name, "content": self.content}


@dataclass
class DirectoryNode:
    """A directory and its entries, in directory-listing order."""
    name: str
    children: List["Node"] = field(default_factory=list)

    type = DIRECTORY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": DIRECTORY,
            "name": self.name,
            "children": [child.to_dict() for child in self.children],
        }

    def iter_files(self, prefix: str = ""):
        """Yield (relative_path, FileNode) for every file below this directory."""
        for child in self.children:
            rel = f"{prefix}{child.name}"
            if isinstance(child, DirectoryNode):
                yield from child.iter_files(rel + "/")
            else:
                yield rel, child


Node = Union[FileNode, DirectoryNode]


def validate_name(name: Any) -> str:
    """Check that a node name is a single, non-empty path segment."""
    if not isinstance(name, str) or not name:
        raise TreeError(f"Node name must be a non-empty string, got {name!r}")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise TreeError(f"Node name must be a single path segment, got {name!r}")
    return name


def node_from_dict(data: Any) -> Node:
    """Parse a node from its wire form."""
    if not isinstance(data, dict):
        raise TreeError(f"Node must be an object, got {type(data).__name__}")
    name = validate_name(data.get("name"))
    node_type = data.get("type")

    if node_type == FILE:
        if "children" in data and data["children"] is not None:
            raise TreeError(f"File node {name!r} must not have children")
        content = data.get("content")
        if content is None:
            content = ""
        if not isinstance(content, str):
            raise TreeError(f"File node {name!r} content must be a string")
        return FileNode(name=name, content=content)

    if node_type == DIRECTORY:
        if "content" in data and data["content"] is not None:
            raise TreeError(f"Directory node {name!r} must not have content")
        children = data.get("children")
        if children is None:
            children = []
        if not isinstance(children, list):
            raise TreeError(f"Directory node {name!r} children must be a list")
        return DirectoryNode(name=name, children=[node_from_dict(c) for c in children])

    raise TreeError(f"Unknown node type {node_type!r} for {name!r}")


def nodes_from_list(items: Iterable[Any]) -> List[Node]:
    return [item if isinstance(item, (FileNode, DirectoryNode)) else node_from_dict(item) for item in items]


# --- Serializer ---
def _read_children(dir_path: str, depth: int, max_depth: int) -> List[Node]:
    if depth > max_depth:
        raise TreeDepthError(dir_path, max_depth)
    nodes: List[Node] = []
    for entry in os.listdir(dir_path):
        full_path = os.path.join(dir_path, entry)
        if os.path.isdir(full_path):
            nodes.append(DirectoryNode(
                name=entry,
                children=_read_children(full_path, depth + 1, max_depth),
            ))
        else:
            # newline="" keeps line endings untouched; undecodable bytes become U+FFFD
            with open(full_path, "r", encoding="utf-8", errors="replace", newline="") as f:
                nodes.append(FileNode(name=entry, content=f.read()))
    return nodes


def serialize_directory(path: Union[str, Path], max_depth: int = MAX_DEPTH) -> DirectoryNode:
    """
    Capture a local directory as a DirectoryNode.

    Every entry is included, in the order the filesystem lists it. Files are
    read as UTF-8 text with undecodable bytes replaced; read and stat errors
    propagate.
    """
    root = os.fspath(path)
    if not os.path.isdir(root):
        raise NotADirectoryError(f"Not a directory: {root}")
    name = os.path.basename(os.path.normpath(os.path.abspath(root)))
    tree = DirectoryNode(name=name, children=_read_children(root, 1, max_depth))
    logger.debug("Serialized %s: %d file(s)", root, sum(1 for _ in tree.iter_files()))
    return tree


# --- Materializer ---
def _write_nodes(nodes: List[Node], base: Path, depth: int, max_depth: int) -> int:
    if depth > max_depth:
        raise TreeDepthError(str(base), max_depth)
    written = 0
    for node in nodes:
        node_path = base / validate_name(node.name)
        if isinstance(node, DirectoryNode):
            node_path.mkdir(parents=True, exist_ok=True)
            written += _write_nodes(node.children, node_path, depth + 1, max_depth)
        else:
            node_path.parent.mkdir(parents=True, exist_ok=True)
            with open(node_path, "w", encoding="utf-8", newline="") as f:
                f.write(node.content or "")
            written += 1
    return written


def materialize(nodes: Iterable[Any], base_path: Union[str, Path], max_depth: int = MAX_DEPTH) -> int:
    """
    Recreate nodes under base_path and return the number of files written.

    Existing directories are reused and existing files overwritten; files not
    present in the tree are left alone.
    """
    base = Path(base_path)
    base.mkdir(parents=True, exist_ok=True)
    written = _write_nodes(nodes_from_list(nodes), base, 1, max_depth)
    logger.debug("Materialized %d file(s) under %s", written, base)
    return written
