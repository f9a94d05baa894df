"""Deformation graph nodes, vertex weights, constraints and neighbour search."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, MutableSequence, Sequence

import numpy as np
from numpy.typing import ArrayLike

LOOK_BACK = 20


def _vec3(value: ArrayLike) -> np.ndarray:
    array = np.asarray(value, dtype=np.float64).reshape(-1)
    if array.shape != (3,):
        raise ValueError(f"expected 3 components, got {array.size}")
    return array.copy()


@dataclass
class GraphNode:
    """A node of the deformation graph with its local affine transform."""

    id: int
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    neighbours: List[int] = field(default_factory=list)
    enabled: bool = True

    def __post_init__(self) -> None:
        self.position = _vec3(self.position)
        self.translation = _vec3(self.translation)
        rotation = np.asarray(self.rotation, dtype=np.float64)
        if rotation.shape != (3, 3):
            raise ValueError(f"rotation must be 3x3, got {rotation.shape}")
        self.rotation = rotation.copy()


@dataclass
class VertexWeightMap:
    """The influence ``weight`` of graph node ``node`` on a vertex or pose."""

    weight: float
    node: int
    relative: bool = False


@dataclass
class Constraint:
    """Pins a vertex to a fixed position or to the deformed position of another vertex."""

    vertex_id: int
    target_position: np.ndarray
    relative: bool
    target_id: int

    @classmethod
    def absolute(cls, vertex_id: int, target: ArrayLike) -> "Constraint":
        return cls(vertex_id, _vec3(target), False, -1)

    @classmethod
    def relative_to(cls, vertex_id: int, target_id: int) -> "Constraint":
        return cls(vertex_id, np.zeros(3), True, target_id)


def sort_weight_maps(
    weights: MutableSequence[VertexWeightMap], graph: Sequence[GraphNode]
) -> None:
    """Order ``weights`` in place by the id of the node each refers to (stable)."""
    weights[:] = sorted(weights, key=lambda w: graph[w.node].id)


def connect_sequential(nodes: Sequence[GraphNode], k: int) -> None:
    """Link each node to ``k`` neighbours that are nearest in sequence order."""
    size = len(nodes)
    half = k // 2
    if k < 1:
        raise ValueError("a graph needs at least one neighbour per node")
    if size < k + 1:
        raise ValueError(f"connecting {k} neighbours needs at least {k + 1} nodes, got {size}")

    for i in range(half):
        nodes[i].neighbours.extend(n for n in range(k + 1) if n != i)

    for i in range(half, size - half):
        for n in range(half):
            nodes[i].neighbours.append(i - (n + 1))
            nodes[i].neighbours.append(i + (n + 1))

    for i in range(size - half, size):
        nodes[i].neighbours.extend(n for n in range(size - (k + 1), size) if n != i)


def _closest_time_index(time: int, graph_times: Sequence[int]) -> int:
    imin = 0
    imax = len(graph_times) - 1
    imid = (imin + imax) // 2
    while imax >= imin:
        imid = (imin + imax) // 2
        if graph_times[imid] < time:
            imin = imid + 1
        elif graph_times[imid] > time:
            imax = imid - 1
        else:
            break

    imin = min(imin, len(graph_times) - 1)
    imax = max(imax, 0)

    d_min = abs(int(graph_times[imin]) - int(time))
    d_mid = abs(int(graph_times[imid]) - int(time))
    d_max = abs(int(graph_times[imax]) - int(time))

    if d_min <= d_mid and d_min <= d_max:
        return imin
    if d_mid <= d_min and d_mid <= d_max:
        return imid
    return imax


def nearest_node_weights(
    time: int,
    position: ArrayLike,
    graph_times: Sequence[int],
    graph_cloud: Sequence[ArrayLike],
    nodes: Sequence[GraphNode],
    k: int,
) -> List[VertexWeightMap]:
    """Weights of the ``k`` nodes nearest to ``position`` among those sampled near ``time``.

    Candidates are up to twenty nodes around the one whose sample time is
    closest to ``time``. The result is normalised and ordered by node id.
    """
    if not graph_times:
        raise ValueError("the graph has no sample times")
    if k < 1:
        raise ValueError("at least one neighbour is needed")

    point = _vec3(position)
    found = min(_closest_time_index(time, graph_times), len(graph_cloud) - 1)

    candidates: List[tuple] = []
    for j in range(found, -1, -1):
        candidates.append((float(np.float32(np.linalg.norm(np.asarray(graph_cloud[j]) - point))), j))
        if len(candidates) == LOOK_BACK:
            break
    if len(candidates) != LOOK_BACK:
        for j in range(found + 1, len(graph_times)):
            candidates.append(
                (float(np.float32(np.linalg.norm(np.asarray(graph_cloud[j]) - point))), j)
            )
            if len(candidates) == LOOK_BACK:
                break

    candidates.sort(key=lambda c: c[0])
    if len(candidates) <= k:
        raise ValueError(f"{len(candidates)} candidate nodes cannot weight {k} neighbours")

    d_max = candidates[k][0]
    if d_max == 0:
        raise ValueError("the nearest nodes all coincide with the point")

    weights = [
        VertexWeightMap(
            (1.0 - float(np.linalg.norm(point - nodes[idx].position)) / d_max) ** 2, idx
        )
        for _, idx in candidates[:k]
    ]
    total = sum(w.weight for w in weights)
    if total == 0:
        raise ValueError("the nearest nodes give the point no weight")
    for w in weights:
        w.weight /= total

    sort_weight_maps(weights, nodes)
    return weights


def deform_point(
    point: ArrayLike, weights: Sequence[VertexWeightMap], graph: Sequence[GraphNode]
) -> np.ndarray:
    """Position of ``point`` after blending the transforms of its weighted nodes."""
    source = _vec3(point)
    result = np.zeros(3)
    for w in weights:
        node = graph[w.node]
        result += w.weight * (
            node.rotation @ (source - node.position) + node.position + node.translation
        )
    return result