"""Residual, sparse Jacobian and update step of the deformation graph energy."""

from __future__ import annotations

from math import sqrt
from typing import Iterable, List, Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike

from .deformation_nodes import Constraint, GraphNode, VertexWeightMap, deform_point, sort_weight_maps
from .jacobian import Jacobian, OrderedJacobianRow

NUM_VARIABLES = 12
E_ROT_ROWS = 6
E_REG_ROWS = 3
E_CON_ROWS = 3

WeightMaps = Sequence[Sequence[VertexWeightMap]]


def _node_influences(
    constraint: Constraint, vertex_map: WeightMaps, graph: Sequence[GraphNode]
) -> bool:
    """Whether any enabled node moves the constrained vertex (or its target)."""
    if any(graph[w.node].enabled for w in vertex_map[constraint.vertex_id]):
        return True
    if constraint.relative:
        return any(graph[w.node].enabled for w in vertex_map[constraint.target_id])
    return False


def _vertex_position(
    vertex_id: int,
    vertex_map: WeightMaps,
    source_vertices: Sequence[ArrayLike],
    graph: Sequence[GraphNode],
) -> np.ndarray:
    return deform_point(source_vertices[vertex_id], vertex_map[vertex_id], graph)


def sparse_residual(
    graph: Sequence[GraphNode],
    vertex_map: WeightMaps,
    constraints: Sequence[Constraint],
    source_vertices: Sequence[ArrayLike],
    w_reg: float = 10.0,
    w_con: float = 100.0,
) -> np.ndarray:
    """Stacked rotation, regularisation and constraint residuals."""
    sq_reg = sqrt(w_reg)
    sq_con = sqrt(w_con)
    parts: List[np.ndarray] = []

    for node in graph:
        if node.enabled:
            c0, c1, c2 = node.rotation.T
            parts.append(
                np.array(
                    [
                        c0 @ c1,
                        c0 @ c2,
                        c1 @ c2,
                        c0 @ c0 - 1.0,
                        c1 @ c1 - 1.0,
                        c2 @ c2 - 1.0,
                    ]
                )
            )

    for node in graph:
        for n in node.neighbours:
            neighbour = graph[n]
            if neighbour.enabled or node.enabled:
                parts.append(
                    (
                        node.rotation @ (neighbour.position - node.position)
                        + node.position
                        + node.translation
                        - (neighbour.position + neighbour.translation)
                    )
                    * sq_reg
                )

    for constraint in constraints:
        if not _node_influences(constraint, vertex_map, graph):
            continue
        source = _vertex_position(constraint.vertex_id, vertex_map, source_vertices, graph)
        if constraint.relative:
            target = _vertex_position(constraint.target_id, vertex_map, source_vertices, graph)
        else:
            target = constraint.target_position
        parts.append((source - target) * sq_con)

    return np.concatenate(parts) if parts else np.zeros(0)


def _row(size: int, entries: Iterable[Tuple[int, float]]) -> OrderedJacobianRow:
    row = OrderedJacobianRow(size)
    for index, value in entries:
        row.append(index, value)
    return row


def _rotation_rows(rotation: np.ndarray, col: int) -> List[OrderedJacobianRow]:
    def block(offset: int, values: np.ndarray) -> List[Tuple[int, float]]:
        return [(col + offset + i, float(values[i])) for i in range(3)]

    c0, c1, c2 = rotation[:, 0], rotation[:, 1], rotation[:, 2]
    return [
        _row(6, block(0, c1) + block(3, c0)),
        _row(6, block(0, c2) + block(6, c0)),
        _row(6, block(3, c2) + block(6, c1)),
        _row(3, block(0, 2 * c0)),
        _row(3, block(3, 2 * c1)),
        _row(3, block(6, 2 * c2)),
    ]


def _regularisation_rows(
    node: GraphNode, neighbour: GraphNode, back_set: int, sq_reg: float
) -> List[OrderedJacobianRow]:
    col_offset = node.id * NUM_VARIABLES
    col_offset_n = neighbour.id * NUM_VARIABLES
    if col_offset == col_offset_n:
        raise ValueError(f"node {node.id} lists itself as a neighbour")
    col = col_offset - back_set
    col_n = col_offset_n - back_set
    delta = neighbour.position - node.position

    rows = []
    for axis in range(3):
        row = OrderedJacobianRow(5)
        if col_offset_n < col_offset and neighbour.enabled:
            row.append(col_n + 9 + axis, -sq_reg)
        if node.enabled:
            row.append(col + axis, delta[0] * sq_reg)
            row.append(col + 3 + axis, delta[1] * sq_reg)
            row.append(col + 6 + axis, delta[2] * sq_reg)
            row.append(col + 9 + axis, sq_reg)
        if col_offset_n > col_offset and neighbour.enabled:
            row.append(col_n + 9 + axis, -sq_reg)
        rows.append(row)
    return rows


def _constraint_rows(
    weighted: Sequence[Tuple[VertexWeightMap, bool]],
    source_position: np.ndarray,
    target_position: np.ndarray,
    graph: Sequence[GraphNode],
    k: int,
    back_set: int,
    sq_con: float,
) -> List[OrderedJacobianRow]:
    rows = [OrderedJacobianRow(4 * k * 2) for _ in range(E_CON_ROWS)]
    seen = set()
    for weight, is_relative in weighted:
        node = graph[weight.node]
        if not node.enabled:
            continue
        col = node.id * NUM_VARIABLES - back_set
        if is_relative:
            delta = (node.position - target_position) * weight.weight
            scale = -weight.weight
        else:
            delta = (source_position - node.position) * weight.weight
            scale = weight.weight
        for axis, row in enumerate(rows):
            entries = (
                (col + axis, delta[0]),
                (col + 3 + axis, delta[1]),
                (col + 6 + axis, delta[2]),
                (col + 9 + axis, scale),
            )
            for index, value in entries:
                if node.id in seen:
                    row.add_to(index, value, sq_con)
                else:
                    row.append(index, value * sq_con)
        seen.add(node.id)
    return rows


def sparse_jacobian(
    graph: Sequence[GraphNode],
    vertex_map: WeightMaps,
    constraints: Sequence[Constraint],
    source_vertices: Sequence[ArrayLike],
    k: int,
    num_cols: int,
    back_set: int,
    w_reg: float = 10.0,
    w_con: float = 100.0,
) -> Jacobian:
    """Jacobian of :func:`sparse_residual` with respect to the enabled nodes' variables.

    Columns of node ``i`` start at ``12 * i - back_set``. Weights of the
    targets of relative constraints are marked ``relative`` in ``vertex_map``.
    """
    sq_reg = sqrt(w_reg)
    sq_con = sqrt(w_con)
    rows: List[OrderedJacobianRow] = []

    for node in graph:
        if node.enabled:
            rows.extend(_rotation_rows(node.rotation, node.id * NUM_VARIABLES - back_set))

    for node in graph:
        for n in node.neighbours:
            neighbour = graph[n]
            if neighbour.enabled or node.enabled:
                rows.extend(_regularisation_rows(node, neighbour, back_set, sq_reg))

    for constraint in constraints:
        if not _node_influences(constraint, vertex_map, graph):
            continue
        weight_map = vertex_map[constraint.vertex_id]
        source_position = np.asarray(source_vertices[constraint.vertex_id], dtype=np.float64)

        if constraint.relative:
            target_position = np.asarray(
                source_vertices[constraint.target_id], dtype=np.float64
            )
            rel_weight_map = vertex_map[constraint.target_id]
            for weight in rel_weight_map:
                weight.relative = True
            mixed = list(weight_map) + list(rel_weight_map)
            sort_weight_maps(mixed, graph)
            weighted = [(w, w.relative) for w in mixed]
        else:
            target_position = constraint.target_position
            weighted = [(w, False) for w in weight_map]

        rows.extend(
            _constraint_rows(
                weighted, source_position, target_position, graph, k, back_set, sq_con
            )
        )

    jacobian = Jacobian()
    jacobian.assign(rows, num_cols)
    return jacobian


def apply_delta(graph: Sequence[GraphNode], delta: ArrayLike) -> None:
    """Add an update step to the rotations and translations of the enabled nodes.

    Each enabled node takes twelve values: its rotation in column-major
    order followed by its translation.
    """
    step = np.asarray(delta, dtype=np.float64).reshape(-1)
    enabled = [node for node in graph if node.enabled]
    expected = len(enabled) * NUM_VARIABLES
    if step.size != expected:
        raise ValueError(f"update has {step.size} values, {expected} are needed")
    for index, node in enumerate(enabled):
        values = step[index * NUM_VARIABLES : (index + 1) * NUM_VARIABLES]
        node.rotation += values[:9].reshape(3, 3, order="F")
        node.translation += values[9:12]