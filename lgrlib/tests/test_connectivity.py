"""Tests for lgrlib.mesh._connectivity (inverted node -> element adjacency)."""

import numpy as np
import numpy.testing as npt
import pytest

from lgrlib._errors import ConnectivityError
from lgrlib.mesh import invert_connectivity, validate_connectivity


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def random_mesh(seed, nodes_in_element, n_nodes=24, n_extra=20):
    """Random connectivity in which every node is used at least once."""
    rng = np.random.default_rng(seed)
    cover = rng.permutation(n_nodes).reshape(-1, nodes_in_element)
    extra = np.array([rng.choice(n_nodes, nodes_in_element, replace=False)
                      for _ in range(n_extra)])
    e2n = rng.permutation(np.vstack([cover, extra]))
    return e2n, n_nodes


@pytest.fixture
def two_tets():
    return np.array([[0, 1, 2, 3], [1, 2, 3, 4]])


# ---------------------------------------------------------------------------
# Inversion
# ---------------------------------------------------------------------------

class TestInvertConnectivity:
    @pytest.mark.parametrize('seed', range(5))
    @pytest.mark.parametrize('nie', [2, 3, 4])
    def test_bijection_with_forward_relation(self, seed, nie):
        e2n, n_nodes = random_mesh(seed, nie)
        conn = invert_connectivity(e2n, n_nodes)
        for node in range(n_nodes):
            elements, local = conn.node_elements(node)
            expected = {e for e in range(e2n.shape[0]) if node in e2n[e]}
            assert set(elements.tolist()) == expected
            assert len(elements) == len(expected)
            npt.assert_array_equal(e2n[elements, local], node)

    @pytest.mark.parametrize('nie', [2, 3, 4])
    def test_entry_count(self, nie):
        e2n, n_nodes = random_mesh(7, nie)
        conn = invert_connectivity(e2n, n_nodes)
        assert conn.offsets[-1] == e2n.size
        assert conn.node_elements_to_elements.size == e2n.size
        assert conn.counts.sum() == e2n.shape[0] * nie

    def test_entries_ordered_by_element(self):
        e2n, n_nodes = random_mesh(3, 4)
        conn = invert_connectivity(e2n, n_nodes)
        for node in range(n_nodes):
            elements, _ = conn.node_elements(node)
            assert np.all(np.diff(elements) > 0)

    def test_two_tets(self, two_tets):
        conn = invert_connectivity(two_tets, 5)
        npt.assert_array_equal(conn.counts, [1, 2, 2, 2, 1])
        npt.assert_array_equal(conn.offsets, [0, 1, 3, 5, 7, 8])
        elements, local = conn.node_elements(1)
        npt.assert_array_equal(elements, [0, 1])
        npt.assert_array_equal(local, [1, 0])
        elements, local = conn.node_elements(4)
        npt.assert_array_equal(elements, [1])
        npt.assert_array_equal(local, [3])

    def test_single_element(self):
        conn = invert_connectivity([[2, 0, 1]], 3)
        assert conn.n_nodes == 3
        assert conn.n_elements == 1
        assert conn.nodes_in_element == 3
        npt.assert_array_equal(conn.node_elements_to_elements, [0, 0, 0])
        npt.assert_array_equal(conn.node_elements_to_nodes_in_element, [1, 2, 0])

    def test_incidence_matrix(self):
        e2n, n_nodes = random_mesh(11, 3)
        conn = invert_connectivity(e2n, n_nodes)
        expected = np.zeros((n_nodes, e2n.shape[0]))
        for e, row in enumerate(e2n):
            for local, node in enumerate(row):
                expected[node, e] = local + 1
        npt.assert_array_equal(conn.incidence_matrix().toarray(), expected)

    def test_forward_relation_kept_as_int64(self, two_tets):
        conn = invert_connectivity(two_tets.astype(np.int32), 5)
        assert conn.elements_to_nodes.dtype == np.int64
        npt.assert_array_equal(conn.elements_to_nodes, two_tets)

    def test_arrays_are_read_only(self, two_tets):
        conn = invert_connectivity(two_tets, 5)
        for array in (conn.elements_to_nodes, conn.offsets,
                      conn.node_elements_to_elements,
                      conn.node_elements_to_nodes_in_element):
            assert not array.flags.writeable
            with pytest.raises(ValueError):
                array[0] = 7
        assert two_tets.flags.writeable
        conn.incidence_matrix()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidateConnectivity:
    def test_out_of_range_reports_raw_index(self):
        with pytest.raises(ConnectivityError) as excinfo:
            validate_connectivity([[0, 1, 5]], 3)
        assert excinfo.value.index == 5

    def test_negative_index(self):
        with pytest.raises(ConnectivityError) as excinfo:
            validate_connectivity([[0, -1, 2]], 3)
        assert excinfo.value.index == -1

    def test_duplicate_node_in_element(self):
        with pytest.raises(ConnectivityError) as excinfo:
            validate_connectivity([[0, 1, 2], [1, 1, 2]], 3)
        assert excinfo.value.index == 1

    def test_orphan_node(self):
        with pytest.raises(ConnectivityError) as excinfo:
            validate_connectivity([[0, 1]], 3)
        assert excinfo.value.index == 2

    def test_not_two_dimensional(self):
        with pytest.raises(ConnectivityError):
            validate_connectivity(np.array([0, 1, 2]), 3)

    def test_empty(self):
        with pytest.raises(ConnectivityError):
            validate_connectivity(np.zeros((0, 4), dtype=int), 3)

    def test_float_indices_rejected(self):
        with pytest.raises(ConnectivityError):
            validate_connectivity([[0.0, 1.0]], 2)

    def test_wrong_nodes_in_element(self, two_tets):
        with pytest.raises(ConnectivityError):
            validate_connectivity(two_tets, 5, nodes_in_element=3)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            invert_connectivity([[0, 3]], 2)
