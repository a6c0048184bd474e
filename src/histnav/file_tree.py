from collections.abc import Iterable, Iterator

from rich.text import Text
from rich.tree import Tree

from histnav.models import FileTreeNode


def _sort_key(item: tuple[str, FileTreeNode]) -> tuple[bool, str]:
    name, node = item
    # Directories (is_file=False) sort before files.
    return node.is_file, name


def _order_children(node: FileTreeNode) -> None:
    for child in node.children.values():
        _order_children(child)
    node.children = dict(sorted(node.children.items(), key=_sort_key))


def build_file_tree(paths: Iterable[str]) -> FileTreeNode:
    """
    Builds a nested tree from flat `/`-separated relative paths.

    Returns an unnamed root. At every level directories come before files, then
    names in code-point order, so the result does not depend on input order.
    When a path is both a leaf and a prefix of another path, the directory wins.
    Empty segments and empty paths are ignored.
    """
    root = FileTreeNode(name="")
    for path in paths:
        parts = [part for part in path.split("/") if part]
        node = root
        for i, part in enumerate(parts):
            is_leaf = i == len(parts) - 1
            child = node.children.get(part)
            if child is None:
                child = FileTreeNode(name=part, is_file=is_leaf)
                node.children[part] = child
            elif not is_leaf:
                child.is_file = False
            node = child

    _order_children(root)
    return root


def iter_tree(root: FileTreeNode) -> Iterator[tuple[int, FileTreeNode]]:
    """Yields (depth, node) pairs depth-first in display order, excluding the root."""
    stack = [(0, child) for child in reversed(root.children.values())]
    while stack:
        depth, node = stack.pop()
        yield depth, node
        stack.extend((depth + 1, child) for child in reversed(node.children.values()))


def tree_paths(root: FileTreeNode) -> list[str]:
    """Returns the file paths of a tree in display order."""
    paths: list[str] = []

    def walk(node: FileTreeNode, prefix: str) -> None:
        for child in node.children.values():
            path = f"{prefix}{child.name}"
            if child.is_file:
                paths.append(path)
            else:
                walk(child, f"{path}/")

    walk(root, "")
    return paths


def render_file_tree(root: FileTreeNode, label: str = ".") -> Tree:
    tree = Tree(label, guide_style="dim")

    def add(branch: Tree, node: FileTreeNode) -> None:
        for child in node.children.values():
            if child.is_file:
                _ = branch.add(Text(child.name))
            else:
                add(branch.add(Text(f"{child.name}/", style="bold")), child)

    add(tree, root)
    return tree
