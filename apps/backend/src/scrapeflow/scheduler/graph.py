"""Job dependency graph and cycle detection."""

from __future__ import annotations

from typing import Iterable

from .schema import ScheduledJob

DependencyGraph = dict[str, list[str]]


def build_dependency_graph(jobs: Iterable[ScheduledJob]) -> DependencyGraph:
    """Map each job id to the ids it depends on, in dependency-list order.

    References to ids outside ``jobs`` are kept; they have no entry of their
    own and so behave as leaves.
    """
    return {job.id: job.depends_on for job in jobs}


def has_cycle(graph: DependencyGraph, start_id: str) -> bool:
    """Return True if a cycle is reachable from ``start_id``.

    Depth-first search with fresh visited/path sets on every call, so results
    never leak between start nodes.
    """
    visited: set[str] = {start_id}
    path: set[str] = {start_id}
    stack = [(start_id, iter(graph.get(start_id, [])))]

    while stack:
        node, deps = stack[-1]
        for dep in deps:
            if dep in path:
                return True
            if dep not in visited:
                visited.add(dep)
                path.add(dep)
                stack.append((dep, iter(graph.get(dep, []))))
                break
        else:
            stack.pop()
            path.discard(node)

    return False


def find_cyclic_jobs(graph: DependencyGraph, job_ids: Iterable[str] | None = None) -> set[str]:
    """Return every id in ``job_ids`` (default: all jobs) that reaches a cycle.

    Equivalent to filtering with ``has_cycle`` but each node is explored once.
    """
    roots = list(graph if job_ids is None else job_ids)
    reaches_cycle: dict[str, bool] = {}

    for root in roots:
        if root in reaches_cycle:
            continue
        path: set[str] = {root}
        stack = [(root, iter(graph.get(root, [])))]
        found = False

        while stack:
            node, deps = stack[-1]
            for dep in deps:
                if dep in path or reaches_cycle.get(dep):
                    found = True
                    break
                if dep not in reaches_cycle:
                    path.add(dep)
                    stack.append((dep, iter(graph.get(dep, []))))
                    break
            else:
                # Every dependency explored without meeting a cycle
                reaches_cycle[node] = False
                path.discard(node)
                stack.pop()
                continue
            if found:
                break

        if found:
            # Everything still on the stack leads to the cycle
            for node, _ in stack:
                reaches_cycle[node] = True

    return {job_id for job_id in roots if reaches_cycle.get(job_id)}
