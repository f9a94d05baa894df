"""Embedded deformation graph that bends a point cloud and camera poses."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, MutableSequence, Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike

from .cholesky import CholeskyDecomp
from .deformation_nodes import (
    Constraint,
    GraphNode,
    VertexWeightMap,
    connect_sequential,
    deform_point,
    nearest_node_weights,
)
from .deformation_terms import NUM_VARIABLES, apply_delta, sparse_jacobian, sparse_residual
from .stopwatch import Stopwatch

MAX_ITERATIONS = 3


@dataclass(frozen=True)
class OptimisationResult:
    """Outcome of :meth:`DeformationGraph.optimise_graph_sparse`.

    ``error`` is the final squared residual norm, or ``None`` when the
    optimisation was skipped.
    """

    optimised: bool
    error: Optional[float]
    mean_constraint_error: float


def _pose_matrix(pose: object) -> np.ndarray:
    if not isinstance(pose, np.ndarray) or pose.shape != (4, 4):
        raise ValueError("a pose must be a 4x4 numpy array")
    return pose


class DeformationGraph:
    """A sequence of nodes, each with a local affine transform, that deforms
    ``source_vertices`` and camera poses by blending the transforms of the
    ``k`` nearest nodes.

    ``source_vertices`` is kept by reference; :meth:`apply_graph_to_vertices`
    writes the deformed positions back into it.
    """

    W_ROT = 1.0
    W_REG = 10.0
    W_CON = 100.0

    def __init__(self, k: int, source_vertices: MutableSequence[ArrayLike]) -> None:
        if k < 1:
            raise ValueError("a deformation graph needs at least one neighbour per node")
        self.k = k
        self.source_vertices = source_vertices
        self._initialised = False
        self._nodes: List[GraphNode] = []
        self._graph_cloud: List[np.ndarray] = []
        self._graph_times: List[int] = []
        self._vertex_map: List[List[VertexWeightMap]] = []
        self._pose_map: List[List[VertexWeightMap]] = []
        self._constraints: List[Constraint] = []
        self._last_point_count = 0
        self._cholesky = CholeskyDecomp()

    def _require_initialised(self) -> None:
        if not self._initialised:
            raise RuntimeError("the deformation graph has not been initialised")

    def is_init(self) -> bool:
        return self._initialised

    def graph(self) -> List[GraphNode]:
        return self._nodes

    def graph_times(self) -> List[int]:
        return self._graph_times

    @property
    def vertex_map(self) -> List[List[VertexWeightMap]]:
        return self._vertex_map

    @property
    def constraints(self) -> List[Constraint]:
        return list(self._constraints)

    def initialise_graph(
        self, custom_graph: Sequence[ArrayLike], graph_time_map: Sequence[int]
    ) -> None:
        """Build the nodes from sampled positions and their sample times."""
        if len(custom_graph) != len(graph_time_map):
            raise ValueError(
                f"{len(custom_graph)} node positions but {len(graph_time_map)} sample times"
            )
        self._graph_times = [int(t) for t in graph_time_map]
        self._graph_cloud = [np.asarray(p, dtype=np.float64).reshape(3).copy() for p in custom_graph]
        self._nodes = [GraphNode(i, position=p) for i, p in enumerate(self._graph_cloud)]
        connect_sequential(self._nodes, self.k)
        self._initialised = True

    def _weights_for(self, time: int, position: ArrayLike) -> List[VertexWeightMap]:
        return nearest_node_weights(
            time, position, self._graph_times, self._graph_cloud, self._nodes, self.k
        )

    def append_vertices(self, vertex_time_map: Sequence[int], original_point_end: int) -> None:
        """Weight the source vertices added since the last call."""
        self._require_initialised()
        del self._vertex_map[self._last_point_count :]
        self._vertex_map.extend([] for _ in range(self._last_point_count - len(self._vertex_map)))
        for i in range(self._last_point_count, len(self.source_vertices)):
            self._vertex_map.append(self._weights_for(vertex_time_map[i], self.source_vertices[i]))
        self._last_point_count = original_point_end

    def set_poses_seq(self, pose_time_map: Sequence[int], poses: Sequence[np.ndarray]) -> None:
        """Replace the pose weights with those of ``poses`` (4x4 camera-to-world)."""
        self._require_initialised()
        if len(pose_time_map) < len(poses):
            raise IndexError(f"{len(poses)} poses but only {len(pose_time_map)} pose times")
        self._pose_map = [
            self._weights_for(time, np.asarray(pose, dtype=np.float64)[:3, 3])
            for time, pose in zip(pose_time_map, poses)
        ]

    def add_constraint(self, vertex_id: int, target: ArrayLike) -> None:
        """Pin a vertex to ``target``, replacing any constraint on that vertex."""
        self._require_initialised()
        self._put_constraint(Constraint.absolute(vertex_id, target))

    def add_relative_constraint(self, vertex_id: int, target_id: int) -> None:
        """Tie a vertex to another, replacing any constraint on that vertex."""
        self._require_initialised()
        self._put_constraint(Constraint.relative_to(vertex_id, target_id))

    def _put_constraint(self, constraint: Constraint) -> None:
        for index, existing in enumerate(self._constraints):
            if existing.vertex_id == constraint.vertex_id:
                self._constraints[index] = constraint
                return
        self._constraints.append(constraint)

    def clear_constraints(self) -> None:
        self._constraints.clear()

    def _vertex_position(self, vertex_id: int) -> np.ndarray:
        self._require_initialised()
        return deform_point(
            self.source_vertices[vertex_id], self._vertex_map[vertex_id], self._nodes
        )

    def apply_graph_to_vertices(self) -> None:
        """Overwrite every source vertex with its deformed position."""
        for i in range(len(self.source_vertices)):
            self.source_vertices[i] = self._vertex_position(i)

    def apply_graph_to_poses(self, poses: Sequence[np.ndarray]) -> None:
        """Deform the given 4x4 poses in place, keeping their rotations orthonormal."""
        self._require_initialised()
        if len(poses) != len(self._pose_map):
            raise ValueError(f"{len(poses)} poses given, {len(self._pose_map)} were weighted")
        for pose, weights in zip(poses, self._pose_map):
            matrix = _pose_matrix(pose)
            new_position = deform_point(matrix[:3, 3], weights, self._nodes)
            rotation = np.zeros((3, 3))
            for w in weights:
                rotation += w.weight * self._nodes[w.node].rotation
            u, _, vt = np.linalg.svd(rotation @ matrix[:3, :3])
            matrix[:3, 3] = new_position
            matrix[:3, :3] = u @ vt

    def _non_relative_constraint_error(self) -> float:
        total = 0.0
        for constraint in self._constraints:
            if not constraint.relative:
                position = self._vertex_position(constraint.vertex_id)
                total += float(np.linalg.norm(position - constraint.target_position))
        if not self._constraints:
            return math.nan
        return total / len(self._constraints)

    def _residual(self) -> np.ndarray:
        return sparse_residual(
            self._nodes,
            self._vertex_map,
            self._constraints,
            self.source_vertices,
            self.W_REG,
            self.W_CON,
        )

    def _jacobian(self, num_cols: int, back_set: int):
        return sparse_jacobian(
            self._nodes,
            self._vertex_map,
            self._constraints,
            self.source_vertices,
            self.k,
            num_cols,
            back_set,
            self.W_REG,
            self.W_CON,
        )

    def optimise_graph_sparse(self, fern_match: bool, last_deform_time: int) -> OptimisationResult:
        """Fit the enabled nodes to the constraints with a few Gauss-Newton steps.

        Only nodes sampled after ``last_deform_time`` are free. With
        ``fern_match`` set, a graph that already meets its constraints closely
        is left alone.
        """
        self._require_initialised()
        watch = Stopwatch.get_instance()
        watch.tick("opt")
        try:
            mean_error = self._non_relative_constraint_error()
            if fern_match and mean_error < 0.06:
                return OptimisationResult(False, None, mean_error)

            num_cols = 0
            back_set = len(self._nodes) * NUM_VARIABLES
            for node, sample_time in zip(self._nodes, self._graph_times):
                node.enabled = sample_time > last_deform_time
                if node.enabled:
                    num_cols += NUM_VARIABLES
                    back_set -= NUM_VARIABLES

            residual = self._residual()
            error = float(residual @ residual)

            if num_cols > 0:
                jacobian = self._jacobian(num_cols, back_set)
                last_error = error
                for iteration in range(1, MAX_ITERATIONS + 1):
                    delta = self._cholesky.solve(jacobian, -residual, iteration == 1)
                    apply_delta(self._nodes, delta)

                    residual = self._residual()
                    error = float(residual @ residual)
                    error_diff = error - last_error

                    if (
                        error > last_error
                        or float(np.linalg.norm(delta)) < 1e-2
                        or error < 1e-3
                        or abs(error_diff) < 1e-5 * error
                        or (iteration == 1 and fern_match and error > 10.0)
                    ):
                        break

                    last_error = error
                    jacobian = self._jacobian(num_cols, back_set)
                self._cholesky.free_factor()

            return OptimisationResult(True, error, self._non_relative_constraint_error())
        finally:
            watch.tock("opt")

    def reset_graph(self) -> None:
        """Return every node to the identity transform."""
        for node in self._nodes:
            node.rotation = np.eye(3)
            node.translation = np.zeros(3)