"""Iterative forest construction and lineage extraction over flat records."""

from __future__ import annotations

from collections import deque
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from dataclasses import dataclass, field
from functools import partial
from typing import (
    AbstractSet,
    Deque,
    Dict,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Sequence,
    Set,
    Tuple,
    TypeVar,
)

from treeforge.config.policies import ForestBuildPolicy
from treeforge.entities.core import TreeNode
from treeforge.utils.helpers import chunked
from treeforge.utils.logging import get_logger

from .validator import validate_records

_LOGGER = get_logger(module=__name__)

N = TypeVar("N", bound=TreeNode)


@dataclass(slots=True)
class ForestBuildResult(Generic[N]):
    """Roots of a built forest plus the bookkeeping of how it converged."""

    roots: List[N]
    passes: int = 0
    attachments_per_pass: List[int] = field(default_factory=list)
    stranded: List[Hashable] = field(default_factory=list)
    parallel_passes: int = 0
    expanded: int = 0

    @property
    def attached(self) -> int:
        return sum(self.attachments_per_pass)

    def statistics(self) -> Dict[str, object]:
        """Return structural statistics for manifests and CLI output."""

        node_count = 0
        max_depth = 0
        for _, depth in _iter_with_depth(self.roots):
            node_count += 1
            max_depth = max(max_depth, depth)
        return {
            "node_count": node_count,
            "root_count": len(self.roots),
            "max_depth": max_depth,
            "passes": self.passes,
            "attached": self.attached,
            "expanded": self.expanded,
            "stranded_count": len(self.stranded),
            "parallel_passes": self.parallel_passes,
        }

    def to_manifest(self) -> dict:
        return {
            "statistics": self.statistics(),
            "attachments_per_pass": list(self.attachments_per_pass),
            "stranded": list(self.stranded),
        }


def _iter_with_depth(roots: Iterable[TreeNode]) -> Iterator[Tuple[TreeNode, int]]:
    stack: List[Tuple[TreeNode, int]] = [(root, 0) for root in reversed(list(roots))]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        for child in reversed(node.children):
            stack.append((child, depth + 1))


def _unplaced_children(
    frontier: Sequence[Hashable],
    *,
    children_index: Mapping[Hashable, Sequence[Hashable]],
    placed: AbstractSet[Hashable],
) -> List[Hashable]:
    """Return the children of ``frontier`` that are not placed yet, in frontier order."""

    return [
        child_id
        for parent_id in frontier
        for child_id in children_index.get(parent_id, ())
        if child_id not in placed
    ]


def _cycle_members(index: Mapping[Hashable, TreeNode], placed: AbstractSet[Hashable]) -> List[Hashable]:
    """Return, in input order, the unplaced ids that lie on a parent cycle.

    Every unplaced record has a resolvable, unplaced parent, so following
    parent references from it always ends on a cycle.
    """

    finished: Set[Hashable] = set(placed)
    members: Set[Hashable] = set()
    for start in index:
        if start in finished:
            continue
        trail: Dict[Hashable, int] = {}
        current = start
        while current not in finished and current not in trail:
            trail[current] = len(trail)
            current = index[current].parent_id
        if current in trail:
            entry = trail[current]
            members.update(identifier for identifier, position in trail.items() if position >= entry)
        finished.update(trail)
    return [identifier for identifier in index if identifier in members]


class ForestBuilder:
    """Organise flat parent-referencing records into rooted trees.

    A parent to children index is built once in input order. Construction
    then descends from the roots one level per pass, so each record is
    expanded once. Every pass decides first (read-only, optionally on worker
    threads) and attaches afterwards in frontier order, so the resulting
    forest does not depend on whether a pass ran in parallel. When the levels
    run out while records remain, those records hang off parent cycles: the
    cycle members are emitted as roots and their descendants still attach.
    """

    def __init__(self, policy: ForestBuildPolicy | None = None) -> None:
        self._policy = policy or ForestBuildPolicy()

    @property
    def policy(self) -> ForestBuildPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def build(self, records: Iterable[N]) -> List[N]:
        """Attach every record under its parent and return the roots in input order."""

        return self.assemble(records).roots

    def build_ordered(self, records: Iterable[N]) -> Tuple[N, ...]:
        """Same as :meth:`build` but returns an immutable sequence of roots."""

        return tuple(self.build(records))

    def assemble(self, records: Iterable[N]) -> ForestBuildResult[N]:
        nodes = list(records)
        if not nodes:
            return ForestBuildResult(roots=[])
        if self._policy.validate_input:
            validate_records(nodes)

        index: Dict[Hashable, N] = {node.id: node for node in nodes}
        children_index: Dict[Hashable, List[Hashable]] = {}
        root_ids: List[Hashable] = []
        for identifier, node in index.items():
            if self._resolve_parent(node, index) is None:
                root_ids.append(identifier)
            else:
                children_index.setdefault(node.parent_id, []).append(identifier)

        result: ForestBuildResult[N] = ForestBuildResult(roots=[])
        placed: Set[Hashable] = set(root_ids)
        frontier: List[Hashable] = list(root_ids)
        max_passes = len(index)

        with ExitStack() as stack:
            executor: ThreadPoolExecutor | None = None
            if self._should_parallelize(len(index)):
                executor = stack.enter_context(
                    ThreadPoolExecutor(max_workers=self._policy.max_workers)
                )

            while result.passes < max_passes:
                if not frontier:
                    if len(placed) == len(index):
                        break
                    frontier = self._isolate_cycles(index, placed, result)
                    if not frontier:
                        break

                ready, parallel = self._expand(frontier, children_index, placed, executor)
                result.expanded += len(frontier)
                if ready:
                    result.passes += 1
                    if parallel:
                        result.parallel_passes += 1
                    for child_id in ready:
                        child = index[child_id]
                        index[child.parent_id].add_child(child)
                    placed.update(ready)
                    result.attachments_per_pass.append(len(ready))
                    _LOGGER.debug(
                        "Forest pass completed",
                        pass_number=result.passes,
                        attached=len(ready),
                        pending=len(index) - len(placed),
                        parallel=parallel,
                    )
                frontier = ready

        leftover = [identifier for identifier in index if identifier not in placed]
        if leftover:
            _LOGGER.warning(
                "Pass limit reached, emitting unresolved records as roots",
                stranded=len(leftover),
                sample=leftover[:10],
                passes=result.passes,
            )
            result.stranded.extend(leftover)

        root_set = set(root_ids).union(result.stranded)
        result.roots = [node for identifier, node in index.items() if identifier in root_set]
        _LOGGER.info(
            "Forest built",
            records=len(index),
            roots=len(result.roots),
            passes=result.passes,
            parallel_passes=result.parallel_passes,
            stranded=len(result.stranded),
        )
        return result

    def _isolate_cycles(
        self,
        index: Mapping[Hashable, N],
        placed: Set[Hashable],
        result: ForestBuildResult[N],
    ) -> List[Hashable]:
        members = _cycle_members(index, placed)
        if members:
            _LOGGER.warning(
                "Emitting parent cycle members as roots",
                stranded=len(members),
                sample=members[:10],
                pending=len(index) - len(placed),
            )
            placed.update(members)
            result.stranded.extend(members)
        return members

    def _resolve_parent(self, node: N, index: Mapping[Hashable, N]) -> N | None:
        parent_id = node.parent_id
        if parent_id is None or parent_id == node.id:
            return None
        return index.get(parent_id)

    def _should_parallelize(self, candidate_count: int) -> bool:
        return (
            self._policy.max_workers > 1
            and candidate_count >= self._policy.parallel_threshold
        )

    def _expand(
        self,
        frontier: Sequence[Hashable],
        children_index: Mapping[Hashable, Sequence[Hashable]],
        placed: AbstractSet[Hashable],
        executor: ThreadPoolExecutor | None,
    ) -> Tuple[List[Hashable], bool]:
        resolve = partial(_unplaced_children, children_index=children_index, placed=placed)
        if executor is None or not self._should_parallelize(len(frontier)):
            return resolve(frontier), False
        ready: List[Hashable] = []
        # map() yields chunk results in submission order.
        for chunk_ready in executor.map(resolve, chunked(frontier, self._policy.chunk_size)):
            ready.extend(chunk_ready)
        return ready, True

    # ------------------------------------------------------------------
    # Lineage extraction
    # ------------------------------------------------------------------
    def path_to_root(self, target_id: Hashable, records: Iterable[N]) -> List[N]:
        """Return the ancestors of ``target_id`` from the root down to its parent.

        The target itself is excluded. Unknown targets and roots yield an empty
        list. Climbing stops at the first ancestor already on the path, so a
        parent cycle produces a finite lineage instead of looping.
        """

        _, lineage = self._lineage(target_id, list(records))
        return list(lineage)

    def path_subtree(self, target_id: Hashable, records: Iterable[N]) -> List[N]:
        """Rewrite the lineage of ``target_id`` into a single chain and return its root.

        Every record on the chain keeps only the next lineage member as child
        and the target keeps none. Child lists of the involved records are
        modified in place.
        """

        target, lineage = self._lineage(target_id, list(records))
        if target is None or not lineage:
            return []

        chain: List[N] = list(lineage)
        chain.append(target)
        for elder, younger in zip(chain, chain[1:]):
            elder.children.clear()
            elder.add_child(younger)
        target.children.clear()
        return [chain[0]]

    def _lineage(self, target_id: Hashable, nodes: List[N]) -> Tuple[N | None, Deque[N]]:
        lineage: Deque[N] = deque()
        if self._policy.validate_input:
            validate_records(nodes)
        index: Dict[Hashable, N] = {node.id: node for node in nodes}
        target = index.get(target_id)
        if target is None:
            return None, lineage

        visited: Set[Hashable] = {target.id}
        current = target
        while True:
            parent = self._resolve_parent(current, index)
            if parent is None:
                break
            if parent.id in visited:
                _LOGGER.warning(
                    "Parent cycle encountered while resolving lineage",
                    target=target_id,
                    repeated=parent.id,
                )
                break
            lineage.appendleft(parent)
            visited.add(parent.id)
            current = parent
        return target, lineage


def build_forest(records: Iterable[N], *, policy: ForestBuildPolicy | None = None) -> List[N]:
    return ForestBuilder(policy).build(records)


def path_to_root(
    target_id: Hashable,
    records: Iterable[N],
    *,
    policy: ForestBuildPolicy | None = None,
) -> List[N]:
    return ForestBuilder(policy).path_to_root(target_id, records)


def path_subtree(
    target_id: Hashable,
    records: Iterable[N],
    *,
    policy: ForestBuildPolicy | None = None,
) -> List[N]:
    return ForestBuilder(policy).path_subtree(target_id, records)


__all__ = [
    "ForestBuilder",
    "ForestBuildResult",
    "build_forest",
    "path_to_root",
    "path_subtree",
]
