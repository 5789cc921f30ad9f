"""Dependency graph algorithms over module mappings."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Set

from libbuild.data import Module


def find_cycle(modules: Mapping[str, Module]) -> Optional[List[str]]:
    """Find a dependency cycle among the modules.

    Dependencies that are not keys of ``modules`` are ignored.

    Parameters
    ----------
    modules : Mapping[str, Module]
        Modules keyed by name.

    Returns
    -------
    Optional[List[str]]
        The cycle as a closed path (first name repeated at the end), e.g.
        ``["a", "b", "a"]``, or None when the graph is acyclic.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    color: Dict[str, int] = {name: WHITE for name in modules}

    for root in sorted(modules):
        if color[root] != WHITE:
            continue
        # Iterative DFS; the stack holds (name, remaining dependencies)
        path: List[str] = [root]
        stack = [(root, iter(sorted(modules[root].dependencies)))]
        color[root] = GREY
        while stack:
            name, deps = stack[-1]
            advanced = False
            for dep in deps:
                if dep not in modules:
                    continue
                if color[dep] == GREY:
                    return path[path.index(dep) :] + [dep]
                if color[dep] == WHITE:
                    color[dep] = GREY
                    path.append(dep)
                    stack.append((dep, iter(sorted(modules[dep].dependencies))))
                    advanced = True
                    break
            if not advanced:
                color[name] = BLACK
                path.pop()
                stack.pop()
    return None


def dependency_closure(modules: Mapping[str, Module], names: Iterable[str]) -> Set[str]:
    """Expand names transitively over their dependencies.

    Raises
    ------
    KeyError
        If a name or one of the reached dependencies is not in ``modules``.
    """
    closure: Set[str] = set()
    pending = list(names)
    while pending:
        name = pending.pop()
        if name in closure:
            continue
        closure.add(name)
        pending.extend(modules[name].dependencies)
    return closure


def topological_levels(modules: Mapping[str, Module], names: Iterable[str]) -> List[List[str]]:
    """Split the subgraph induced by ``names`` into dependency levels.

    Level 0 holds the modules without dependencies inside the subgraph; every module of level
    ``k`` only depends on modules of levels ``< k``. Names inside a level are sorted, so the
    result is deterministic.

    Raises
    ------
    ValueError
        If the subgraph contains a cycle.
    """
    selected = set(names)
    remaining = {n: {d for d in modules[n].dependencies if d in selected} for n in selected}
    levels: List[List[str]] = []
    while remaining:
        ready = sorted(n for n, deps in remaining.items() if not deps)
        if not ready:
            raise ValueError(f"Dependency cycle among modules: {sorted(remaining)}")
        levels.append(ready)
        for n in ready:
            del remaining[n]
        for deps in remaining.values():
            deps.difference_update(ready)
    return levels


def topological_order(modules: Mapping[str, Module], names: Iterable[str]) -> List[str]:
    """Order ``names`` so that every module comes after all of its dependencies."""
    return [n for level in topological_levels(modules, names) for n in level]


def dependents_closure(modules: Mapping[str, Module], names: Iterable[str]) -> Set[str]:
    """Every module of ``modules`` that depends, directly or transitively, on one of ``names``.

    The returned set does not include ``names`` themselves unless they depend on each other.
    """
    reverse: Dict[str, Set[str]] = {n: set() for n in modules}
    for m in modules.values():
        for dep in m.dependencies:
            if dep in reverse:
                reverse[dep].add(m.name)
    found: Set[str] = set()
    pending = [d for n in names for d in reverse.get(n, ())]
    while pending:
        name = pending.pop()
        if name in found:
            continue
        found.add(name)
        pending.extend(reverse[name])
    return found
