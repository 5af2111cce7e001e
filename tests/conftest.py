"""Pytest configuration and fixtures."""
import jax
import numpy as onp
import pytest

jax.config.update("jax_enable_x64", True)

from feform.mesh import Mesh, triangle_mesh, rectangle_mesh
from feform.fe import FiniteElement


def split_attributes(mesh, x_split=0.5):
    """Attribute 1 left of ``x_split`` (by element centroid), 2 to the right."""
    centroids = onp.mean(mesh.points[mesh.cells], axis=1)
    return onp.where(centroids[:, 0] < x_split, 1, 2)


@pytest.fixture
def two_triangle_mesh():
    """Unit square split along the 0-2 diagonal into two triangles."""
    points = onp.array([[0., 0.], [1., 0.], [1., 1.], [0., 1.]])
    cells = onp.array([[0, 1, 2], [0, 2, 3]])
    return Mesh(points, cells, ele_type='TRI3')


@pytest.fixture
def tri_mesh():
    """8x8 unit square of triangles, attribute 1 on the left half, 2 on the right."""
    mesh = triangle_mesh(8, 8, 1., 1.)
    mesh.set_attributes(split_attributes(mesh))
    return mesh


@pytest.fixture
def tri_fe(tri_mesh):
    return FiniteElement(tri_mesh, vec=1)


@pytest.fixture
def quad_mesh():
    return rectangle_mesh(4, 2, 2., 1.)
