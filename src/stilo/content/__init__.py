"""Content layer — the samples tree as data.

Handles tree building, path normalization, change classification, file
watching and the HTTP routes that expose the tree.
"""

from stilo.content.paths import normalize
from stilo.content.router import ContentRouter
from stilo.content.tree import README_ENTRY, TreeEntry, build_tree, snapshot, with_readme
from stilo.content.watcher import ChangeEvent, SourceWatcher, classify_change

__all__ = [
    "README_ENTRY",
    "ChangeEvent",
    "ContentRouter",
    "SourceWatcher",
    "TreeEntry",
    "build_tree",
    "classify_change",
    "normalize",
    "snapshot",
    "with_readme",
]
