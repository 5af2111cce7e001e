"""
Test suite for feform.fe module.

Tests FiniteElement geometry data and element-to-dof connectivity.
"""

import pytest
import numpy as onp
from feform.fe import FiniteElement, ElementData
from feform.mesh import Mesh, rectangle_mesh, box_mesh, interval_mesh


class TestFiniteElement:
    """Test FiniteElement class."""

    def create_unit_triangle(self):
        points = onp.array([[0., 0.], [1., 0.], [0., 1.]])
        cells = onp.array([[0, 1, 2]])
        return Mesh(points, cells, 'TRI3')

    def test_initialization_tri3(self):
        fe = FiniteElement(self.create_unit_triangle(), vec=2)

        assert fe.num_cells == 1
        assert fe.num_nodes == 3
        assert fe.num_total_nodes == 3
        assert fe.num_total_dofs == 6
        assert fe.num_local_dofs == 6
        assert fe.dim == 2

    def test_jxw_sums_to_area(self):
        fe = FiniteElement(rectangle_mesh(4, 2, 2., 3.))

        assert onp.isclose(onp.sum(fe.JxW), 6.)

    def test_jxw_interval_and_box(self):
        assert onp.isclose(onp.sum(FiniteElement(interval_mesh(7, 2.)).JxW), 2.)
        assert onp.isclose(onp.sum(FiniteElement(box_mesh(2, 1, 1, 1., 2., 3.)).JxW), 6.)

    def test_physical_shape_grads_tri3(self):
        fe = FiniteElement(self.create_unit_triangle())

        expected = onp.array([[-1., -1.], [1., 0.], [0., 1.]])
        assert fe.shape_grads.shape == (1, fe.num_quads, 3, 2)
        assert onp.allclose(fe.shape_grads[0, 0], expected)

    def test_physical_shape_grads_scaled_quad(self):
        """Gradients reproduce the linear field u = 2x + 3y exactly."""
        mesh = rectangle_mesh(2, 2, 4., 1.)
        fe = FiniteElement(mesh)
        u = 2. * mesh.points[:, 0] + 3. * mesh.points[:, 1]
        # (num_cells, num_quads, num_nodes, dim) * (num_cells, 1, num_nodes, 1)
        grads = onp.sum(fe.shape_grads * u[mesh.cells][:, None, :, None], axis=2)

        assert onp.allclose(grads, onp.array([2., 3.]))

    def test_physical_quad_points_inside_cells(self):
        mesh = rectangle_mesh(2, 2, 2., 2.)
        fe = FiniteElement(mesh)
        quad_points = fe.get_physical_quad_points()

        assert quad_points.shape == (4, fe.num_quads, 2)
        centroids = onp.mean(mesh.points[mesh.cells], axis=1)
        assert onp.allclose(onp.mean(quad_points, axis=1), centroids)

    def test_cell_dofs_node_major(self):
        fe = FiniteElement(self.create_unit_triangle(), vec=2)

        assert onp.array_equal(fe.cell_dofs, [[0, 1, 2, 3, 4, 5]])

    def test_default_signs(self):
        fe = FiniteElement(rectangle_mesh(2, 1, 1., 1.), vec=3)

        assert fe.cell_signs.shape == (2, 12)
        assert onp.all(fe.cell_signs == 1.)

    def test_node_signs_repeated_per_component(self):
        mesh = self.create_unit_triangle()
        fe = FiniteElement(mesh, vec=2, dof_signs=[[1, -1, 1]])

        assert onp.array_equal(fe.cell_signs, [[1, 1, -1, -1, 1, 1]])

    def test_invalid_signs(self):
        mesh = self.create_unit_triangle()

        with pytest.raises(ValueError):
            FiniteElement(mesh, dof_signs=[[1, 2, 1]])
        with pytest.raises(ValueError):
            FiniteElement(mesh, dof_signs=[[1, 1]])

    def test_dimension_mismatch(self):
        points = onp.array([[0., 0., 0.], [1., 0., 0.], [0., 1., 0.]])
        mesh = Mesh(points, onp.array([[0, 1, 2]]), 'TRI3')

        with pytest.raises(ValueError):
            FiniteElement(mesh)

    def test_node_count_mismatch(self):
        mesh = Mesh(onp.array([[0., 0.], [1., 0.], [1., 1.], [0., 1.]]), onp.array([[0, 1, 2, 3]]), 'TRI3')

        with pytest.raises(ValueError):
            FiniteElement(mesh)

    def test_element_data(self):
        fe = FiniteElement(rectangle_mesh(3, 2, 1., 1.), vec=2)
        data = fe.element_data()

        assert isinstance(data, ElementData)
        assert data.quad_points.shape == (6, fe.num_quads, 2)
        assert data.shape_vals.shape == (6, fe.num_quads, 4)
        assert data.shape_grads.shape == (6, fe.num_quads, 4, 2)
        assert data.JxW.shape == (6, fe.num_quads)

    def test_element_data_at_matches_batched(self):
        fe = FiniteElement(rectangle_mesh(3, 2, 1., 1.))
        batched = fe.element_data()
        single = fe.element_data_at(4)

        for a, b in zip(single, batched):
            assert onp.allclose(a, onp.asarray(b)[4])

    def test_empty_mesh(self):
        mesh = Mesh(onp.zeros((0, 2)), onp.zeros((0, 3), dtype=int), 'TRI3')
        fe = FiniteElement(mesh)
        data = fe.element_data()

        assert fe.num_total_dofs == 0
        assert fe.cell_dofs.shape == (0, 3)
        assert data.JxW.shape == (0, fe.num_quads)
        assert data.shape_grads.shape == (0, fe.num_quads, 3, 2)
