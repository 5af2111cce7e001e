"""
Reference element tables built with basix.

Node orderings follow meshio; ``re_order`` maps basix dof numbering onto it.
"""

import numpy as onp
import basix


def get_elements(ele_type):
    """Basix description of an element type.

    Returns
    -------
    element_family, basix_ele, gauss_order, degree, re_order
    """
    element_family = basix.ElementFamily.P
    if ele_type == 'SEG2':
        re_order = [0, 1]
        basix_ele = basix.CellType.interval
        gauss_order = 2
        degree = 1
    elif ele_type == 'SEG3':
        re_order = [0, 1, 2]
        basix_ele = basix.CellType.interval
        gauss_order = 4
        degree = 2
    elif ele_type == 'TRI3':
        re_order = [0, 1, 2]
        basix_ele = basix.CellType.triangle
        gauss_order = 0
        degree = 1
    elif ele_type == 'TRI6':
        re_order = [0, 1, 2, 5, 3, 4]
        basix_ele = basix.CellType.triangle
        gauss_order = 2
        degree = 2
    elif ele_type == 'QUAD4':
        re_order = [0, 1, 3, 2]
        basix_ele = basix.CellType.quadrilateral
        gauss_order = 2
        degree = 1
    elif ele_type == 'QUAD9':
        re_order = [0, 1, 3, 2, 4, 6, 7, 5, 8]
        basix_ele = basix.CellType.quadrilateral
        gauss_order = 4
        degree = 2
    elif ele_type == 'TET4':
        re_order = [0, 1, 2, 3]
        basix_ele = basix.CellType.tetrahedron
        gauss_order = 0
        degree = 1
    elif ele_type == 'TET10':
        re_order = [0, 1, 2, 3, 9, 6, 8, 7, 5, 4]
        basix_ele = basix.CellType.tetrahedron
        gauss_order = 2
        degree = 2
    elif ele_type == 'HEX8':
        re_order = [0, 1, 3, 2, 4, 5, 7, 6]
        basix_ele = basix.CellType.hexahedron
        gauss_order = 2
        degree = 1
    else:
        raise NotImplementedError(f"Element type '{ele_type}' is not supported")

    return element_family, basix_ele, gauss_order, degree, re_order


def get_shape_vals_and_grads(ele_type, gauss_order=None):
    """Shape function values and reference gradients at quadrature points.

    Returns
    -------
    shape_values : onp.ndarray
        (num_quads, num_nodes)
    shape_grads_ref : onp.ndarray
        (num_quads, num_nodes, dim)
    weights : onp.ndarray
        (num_quads,)
    """
    element_family, basix_ele, gauss_order_default, degree, re_order = get_elements(ele_type)

    if gauss_order is None:
        gauss_order = gauss_order_default

    quad_points, weights = basix.make_quadrature(basix_ele, gauss_order)
    element = basix.create_element(element_family, basix_ele, degree, basix.LagrangeVariant.equispaced)
    vals_and_grads = element.tabulate(1, quad_points)[:, :, re_order, :]
    shape_values = vals_and_grads[0, :, :, 0]
    shape_grads_ref = onp.transpose(vals_and_grads[1:, :, :, 0], axes=(1, 2, 0))
    return shape_values, shape_grads_ref, weights

