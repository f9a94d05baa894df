# deformfusion

This package provides building blocks for dense surfel-based RGB-D mapping. At its centre is a non-rigid
**embedded deformation graph**. The graph bends a point cloud and a camera trajectory so that they agree with
position constraints, such as those found at a loop closure.

## Modules

- `deformfusion.deformation_graph`
  - `DeformationGraph(k, source_vertices)` keeps a reference to your list of 3-vectors.
  - `initialise_graph(custom_graph, graph_time_map)` builds one node for each sampled position. Each node is
    linked to its `k` nearest neighbours in sequence order.
  - `append_vertices(vertex_time_map, original_point_end)` weights every source vertex added since the last
    call. A vertex is weighted by the `k` closest nodes among up to twenty nodes sampled near the vertex's time.
  - `set_poses_seq(pose_time_map, poses)` weights 4x4 camera-to-world poses in the same way.
  - `add_constraint(vertex_id, target)` pins a vertex to a position. `add_relative_constraint(vertex_id, target_id)`
    ties a vertex to another vertex. A new constraint on a vertex replaces its old one.
  - `optimise_graph_sparse(fern_match, last_deform_time)` runs at most three Gauss-Newton steps. Only nodes
    sampled after `last_deform_time` take part. It returns an `OptimisationResult` with `optimised`, `error`
    and `mean_constraint_error`. With `fern_match` set, the step is skipped when the mean constraint error is
    already below 0.06.
  - `apply_graph_to_vertices()` writes the deformed positions back into the source list.
  - `apply_graph_to_poses(poses)` updates the weighted poses in place. The rotations are re-orthonormalised
    with an SVD.
  - `reset_graph()` returns every node to the identity transform.
- `deformfusion.deformation_nodes`
  - `GraphNode`, `VertexWeightMap` and `Constraint` (built with `Constraint.absolute` or `Constraint.relative_to`).
  - `sort_weight_maps`, `connect_sequential`, `nearest_node_weights` and `deform_point`.
- `deformfusion.deformation_terms`
  - `sparse_residual` and `sparse_jacobian` cover the rotation, regularisation and constraint terms.
  - `apply_delta` adds an update step to the enabled nodes.
- `deformfusion.jacobian`
  - `OrderedJacobianRow` is a sparse row that is filled in strictly increasing column order. `add_to` adds a
    value to an entry that is already weighted.
  - `Jacobian` collects the rows, and `to_csr()` converts them to a SciPy CSR matrix.
- `deformfusion.cholesky`
  - `CholeskyDecomp.solve(jacobian, residual, first_run)` solves `(JᵀJ) δ = Jᵀr`.
  - The first solve computes a reverse Cuthill–McKee ordering. Later solves reuse that ordering until
    `free_factor()` is called.
- `deformfusion.odometry`
  - `rodrigues(src)` turns an axis-angle vector into a rotation matrix.
  - `compute_update_se3(result_rt, result)` left-composes a 6-vector update (translation, then rotation) onto
    a 4x4 transform. It returns the double-precision result and a single-precision copy.
- `deformfusion.camera`
  - `Resolution` and `Intrinsics` are process-wide settings. The first `get_instance(...)` call fixes their
    values, and `reset()` clears them.
- `deformfusion.img`
  - `Img` is a rows × cols image of a given NumPy dtype and channel count. It either owns its storage or
    wraps a buffer you pass in.
- `deformfusion.uniform`
  - `Uniform` is a named shader value. Its `UniformType` follows from the value given.
  - `Vertex` is a surfel packed as three `vec4`s. It has `to_bytes()` and `from_bytes()`, and `Vertex.SIZE`
    is 48 bytes.
- `deformfusion.stopwatch`
  - `Stopwatch` keeps named timings in milliseconds. It records them with `tick`/`tock`, the `timed(name)`
    context manager, or `add_stopwatch_timing`.
  - `print_all()` prints the timings.
  - `serialise_timings()` packs them into a binary packet.
  - `send_all()` sends the packet over UDP to 127.0.0.1:45454, at most once per interval.
- `deformfusion.parse`
  - `find_arg`, `string_arg`, `float_arg` and `int_arg` look up values that follow a flag in an argument list.
  - `shader_dir` checks that a directory exists.
  - `base_dir` cuts a path at its last `/build/` component.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import numpy as np
from deformfusion.deformation_graph import DeformationGraph

vertices = [np.array([float(i), 0.0, 0.0]) for i in range(40)]
graph = DeformationGraph(4, vertices)
graph.initialise_graph(vertices[::2], list(range(0, 40, 2)))
graph.append_vertices(list(range(40)), len(vertices))
graph.add_constraint(0, np.array([0.0, 0.1, 0.0]))
result = graph.optimise_graph_sparse(False, 0)
graph.apply_graph_to_vertices()
print(result.optimised, result.error, result.mean_constraint_error)
```

## What this package does not do

It is a library of numerical parts, not a complete mapping system. It has:

- no command-line program;
- no camera or log-file input;
- no GPU rendering, shader loading or surfel fusion;
- no frame-to-model tracking loop.

`deformfusion.odometry` offers only the rotation and SE(3) update helpers. `Uniform` and `Vertex` describe
data, but nothing in the package sends that data to a graphics device.