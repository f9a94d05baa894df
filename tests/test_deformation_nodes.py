import numpy as np
import pytest

from deformfusion.deformation_nodes import (
    Constraint,
    GraphNode,
    VertexWeightMap,
    connect_sequential,
    deform_point,
    nearest_node_weights,
    sort_weight_maps,
)


def _line_nodes(count):
    return [GraphNode(id=i, position=np.array([float(i), 0.0, 0.0])) for i in range(count)]


def test_graph_node_defaults():
    node = GraphNode(id=3)
    assert np.array_equal(node.rotation, np.eye(3))
    assert np.array_equal(node.translation, np.zeros(3))
    assert node.neighbours == []
    assert node.enabled is True


def test_graph_node_rejects_bad_rotation():
    with pytest.raises(ValueError):
        GraphNode(id=0, rotation=np.eye(2))


def test_constraint_constructors():
    absolute = Constraint.absolute(5, [1.0, 2.0, 3.0])
    assert absolute.relative is False
    assert absolute.target_id == -1
    assert np.array_equal(absolute.target_position, [1.0, 2.0, 3.0])

    rel = Constraint.relative_to(5, 9)
    assert rel.relative is True
    assert rel.target_id == 9
    assert np.array_equal(rel.target_position, np.zeros(3))


def test_sort_weight_maps_orders_by_id_stably():
    nodes = _line_nodes(5)
    weights = [
        VertexWeightMap(0.1, 4),
        VertexWeightMap(0.2, 1),
        VertexWeightMap(0.3, 3),
        VertexWeightMap(0.4, 1),
    ]
    sort_weight_maps(weights, nodes)
    assert [w.node for w in weights] == [1, 1, 3, 4]
    assert [w.weight for w in weights[:2]] == [0.2, 0.4]


def test_connect_sequential_pins_ends():
    nodes = _line_nodes(8)
    connect_sequential(nodes, 4)
    assert nodes[0].neighbours == [1, 2, 3, 4]
    assert nodes[7].neighbours == [3, 4, 5, 6]


def test_connect_sequential_invariants():
    count, k = 12, 4
    nodes = _line_nodes(count)
    connect_sequential(nodes, k)
    for i, node in enumerate(nodes):
        assert len(node.neighbours) == k
        assert i not in node.neighbours
        assert all(0 <= n < count for n in node.neighbours)
        assert len(set(node.neighbours)) == k


def test_connect_sequential_too_few_nodes():
    with pytest.raises(ValueError):
        connect_sequential(_line_nodes(4), 4)


def test_nearest_node_weights_invariants():
    nodes = _line_nodes(30)
    cloud = [n.position for n in nodes]
    times = list(range(0, 300, 10))
    weights = nearest_node_weights(150, [15.2, 0.0, 0.0], times, cloud, nodes, 4)
    assert len(weights) == 4
    assert sum(w.weight for w in weights) == pytest.approx(1.0)
    ids = [nodes[w.node].id for w in weights]
    assert ids == sorted(ids)
    assert 15 in ids
    assert all(w.weight >= 0 for w in weights)


def test_nearest_node_weights_time_before_all_samples():
    nodes = _line_nodes(10)
    cloud = [n.position for n in nodes]
    times = [100 + i for i in range(10)]
    weights = nearest_node_weights(0, [0.1, 0.0, 0.0], times, cloud, nodes, 3)
    assert 0 in [w.node for w in weights]
    assert sum(w.weight for w in weights) == pytest.approx(1.0)


def test_nearest_node_weights_requires_times():
    with pytest.raises(ValueError):
        nearest_node_weights(0, [0.0, 0.0, 0.0], [], [], [], 4)


def test_nearest_node_weights_requires_more_than_k_candidates():
    nodes = _line_nodes(3)
    cloud = [n.position for n in nodes]
    with pytest.raises(ValueError):
        nearest_node_weights(1, [1.0, 0.0, 0.0], [0, 1, 2], cloud, nodes, 3)


def test_deform_point_identity_graph_keeps_point():
    nodes = _line_nodes(10)
    cloud = [n.position for n in nodes]
    point = np.array([4.3, 1.0, -2.0])
    weights = nearest_node_weights(4, point, list(range(10)), cloud, nodes, 4)
    assert np.allclose(deform_point(point, weights, nodes), point)


def test_deform_point_uniform_translation_moves_point():
    nodes = _line_nodes(10)
    cloud = [n.position.copy() for n in nodes]
    point = np.array([6.6, 0.5, 0.5])
    weights = nearest_node_weights(6, point, list(range(10)), cloud, nodes, 4)
    shift = np.array([0.5, -1.0, 2.0])
    for node in nodes:
        node.translation = shift.copy()
    assert np.allclose(deform_point(point, weights, nodes), point + shift)


def test_deform_point_uniform_rotation_about_node():
    nodes = [GraphNode(id=0, position=np.zeros(3))]
    rot = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
    nodes[0].rotation = rot
    point = np.array([1.0, 2.0, 3.0])
    result = deform_point(point, [VertexWeightMap(1.0, 0)], nodes)
    assert np.allclose(result, rot @ point)