"""Reverse dependency index used for incremental rebuilds."""

import os
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Set, Union

PathLike = Union[str, Path]


def normalize(path: PathLike) -> str:
    """Canonical absolute form used for every key in the index."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


class DependencyCache:
    """Maps each dependency file to the root templates that include it.

    A root's edges are always replaced as a whole: the new edge set is
    computed first and swapped in without any suspension point, so readers
    never observe a half-updated root.
    """

    def __init__(self) -> None:
        self._dependents: Dict[str, Set[str]] = {}  # dependency -> roots
        self._dependencies: Dict[str, FrozenSet[str]] = {}  # root -> dependencies

    def record(self, root: PathLike, dependencies: Iterable[PathLike]) -> None:
        """Replace every edge of root with the given dependency list."""
        root_key = normalize(root)
        new_edges = frozenset(normalize(dep) for dep in dependencies) - {root_key}
        old_edges = self._dependencies.get(root_key, frozenset())

        for dep in old_edges - new_edges:
            roots = self._dependents.get(dep)
            if roots is not None:
                roots.discard(root_key)
                if not roots:
                    del self._dependents[dep]

        for dep in new_edges - old_edges:
            self._dependents.setdefault(dep, set()).add(root_key)

        self._dependencies[root_key] = new_edges

    def dependents_of(self, file: PathLike) -> Set[str]:
        """Roots whose last successful compile declared file as a dependency."""
        return set(self._dependents.get(normalize(file), ()))

    def dependencies_of(self, root: PathLike) -> Set[str]:
        return set(self._dependencies.get(normalize(root), ()))

    def forget(self, root: PathLike) -> None:
        """Drop a root entirely, e.g. after its source was deleted."""
        self.record(root, ())
        self._dependencies.pop(normalize(root), None)

    def clear(self) -> None:
        self._dependents.clear()
        self._dependencies.clear()

    def __contains__(self, root: PathLike) -> bool:
        return normalize(root) in self._dependencies

    def __len__(self) -> int:
        return len(self._dependents)
