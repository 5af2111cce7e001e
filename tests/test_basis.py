"""
Test suite for feform.basis module.

Tests element type mappings, shape functions, and gradients.
"""

import pytest
import numpy as onp
from feform.basis import get_elements, get_shape_vals_and_grads


class TestGetElements:
    """Test the get_elements function for various element types."""

    def test_tri3_elements(self):
        _, _, gauss_order, degree, re_order = get_elements('TRI3')

        assert degree == 1
        assert gauss_order == 0
        assert re_order == [0, 1, 2]

    def test_tri6_elements(self):
        _, _, gauss_order, degree, re_order = get_elements('TRI6')

        assert degree == 2
        assert re_order == [0, 1, 2, 5, 3, 4]

    def test_quad4_elements(self):
        _, _, gauss_order, degree, re_order = get_elements('QUAD4')

        assert degree == 1
        assert gauss_order == 2
        assert re_order == [0, 1, 3, 2]

    def test_hex8_elements(self):
        _, _, gauss_order, degree, re_order = get_elements('HEX8')

        assert degree == 1
        assert re_order == [0, 1, 3, 2, 4, 5, 7, 6]

    def test_tet10_elements(self):
        _, _, _, degree, re_order = get_elements('TET10')

        assert degree == 2
        assert re_order == [0, 1, 2, 3, 9, 6, 8, 7, 5, 4]

    def test_invalid_element_type(self):
        with pytest.raises(NotImplementedError):
            get_elements('INVALID_TYPE')


REFERENCE_VOLUMES = {
    'SEG2': 1., 'SEG3': 1., 'TRI3': 0.5, 'TRI6': 0.5, 'QUAD4': 1., 'QUAD9': 1.,
    'TET4': 1. / 6., 'TET10': 1. / 6., 'HEX8': 1.,
}


class TestShapeFunctions:
    """Shape function tables on reference elements."""

    @pytest.mark.parametrize("ele_type", sorted(REFERENCE_VOLUMES))
    def test_partition_of_unity(self, ele_type):
        shape_vals, shape_grads_ref, weights = get_shape_vals_and_grads(ele_type)

        assert onp.allclose(onp.sum(shape_vals, axis=1), 1.)
        assert onp.allclose(onp.sum(shape_grads_ref, axis=1), 0.)

    @pytest.mark.parametrize("ele_type", sorted(REFERENCE_VOLUMES))
    def test_weights_sum_to_reference_volume(self, ele_type):
        _, _, weights = get_shape_vals_and_grads(ele_type)

        assert onp.isclose(onp.sum(weights), REFERENCE_VOLUMES[ele_type])

    def test_shapes(self):
        shape_vals, shape_grads_ref, weights = get_shape_vals_and_grads('QUAD4')

        assert shape_vals.shape == (4, 4)
        assert shape_grads_ref.shape == (4, 4, 2)
        assert weights.shape == (4,)

    def test_custom_gauss_order(self):
        shape_vals, _, weights = get_shape_vals_and_grads('TRI3', gauss_order=2)

        assert shape_vals.shape[0] == weights.shape[0]
        assert shape_vals.shape[0] > 1

    def test_tri3_linear_gradients(self):
        """P1 reference gradients are constant: (-1,-1), (1,0), (0,1)."""
        _, shape_grads_ref, _ = get_shape_vals_and_grads('TRI3')

        expected = onp.array([[-1., -1.], [1., 0.], [0., 1.]])
        assert onp.allclose(shape_grads_ref[0], expected)
