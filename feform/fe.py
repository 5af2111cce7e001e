"""
Finite element space: per-element geometry data and element-to-dof connectivity.
"""

from typing import NamedTuple, Optional
import numpy as onp
import jax
import jax.numpy as np

from feform import logger
from feform.basis import get_shape_vals_and_grads
from feform.mesh import Mesh


class ElementData(NamedTuple):
    """Geometry and basis data handed to integrator kernels.

    Every field carries a leading element axis so the bundle can be vmapped
    over elements; a single element's data is obtained with ``data[i]``-style
    indexing through :meth:`FiniteElement.element_data_at`.
    """
    quad_points: jax.Array  # (num_cells, num_quads, dim)
    shape_vals: jax.Array  # (num_cells, num_quads, num_nodes)
    shape_grads: jax.Array  # (num_cells, num_quads, num_nodes, dim)
    JxW: jax.Array  # (num_cells, num_quads)


class FiniteElement:
    """Continuous Lagrange space with ``vec`` components on a Mesh.

    Parameters
    ----------
    mesh : Mesh
        Mesh providing points, cells, element type and attributes
    vec : int, default 1
        Number of components per node
    gauss_order : int, optional
        Quadrature degree; the element default is used when None
    dof_signs : NDArray, optional
        Orientation sign per element-to-dof entry, shape (num_cells, num_nodes)
        or (num_cells, num_nodes*vec). All +1 when omitted.

    Notes
    -----
    Global dofs are node-major: dof ``node*vec + component``. The local dof
    order of ``cell_dofs`` matches the flattened (num_nodes, vec) layout
    produced by integrator kernels.
    """
    def __init__(self, mesh: Mesh, vec: int = 1, gauss_order: Optional[int] = None,
                 dof_signs=None) -> None:
        self.mesh = mesh
        self.vec = vec
        self.ele_type = mesh.ele_type
        self.gauss_order = gauss_order
        self.points = mesh.points
        self.cells = mesh.cells
        self.dim = mesh.dim
        self.num_cells = mesh.num_cells
        self.num_total_nodes = len(mesh.points)
        self.num_total_dofs = self.num_total_nodes * self.vec

        self.shape_vals, self.shape_grads_ref, self.quad_weights = get_shape_vals_and_grads(self.ele_type, gauss_order)
        self.num_quads, self.num_nodes = self.shape_vals.shape
        ref_dim = self.shape_grads_ref.shape[-1]
        if ref_dim != self.dim:
            raise ValueError(f"{self.ele_type} elements are {ref_dim}D but mesh points are {self.dim}D")
        if self.cells.shape[1] != self.num_nodes:
            raise ValueError(f"{self.ele_type} elements have {self.num_nodes} nodes, cells have {self.cells.shape[1]}")

        self.shape_grads, self.JxW = self.get_shape_grads()

        # (num_cells, num_nodes*vec)
        self.cell_dofs = (self.cells[:, :, None] * self.vec + onp.arange(self.vec)[None, None, :]).reshape(self.num_cells, self.num_nodes * self.vec)
        self.cell_signs = self._init_signs(dof_signs)

    @property
    def num_local_dofs(self) -> int:
        return self.num_nodes * self.vec

    @property
    def attributes(self) -> onp.ndarray:
        return self.mesh.attributes

    def _init_signs(self, dof_signs):
        shape = (self.num_cells, self.num_local_dofs)
        if dof_signs is None:
            return onp.ones(shape)
        dof_signs = onp.asarray(dof_signs, dtype=onp.float64)
        if dof_signs.shape == (self.num_cells, self.num_nodes):
            dof_signs = onp.repeat(dof_signs, self.vec, axis=1)
        if dof_signs.shape != shape:
            raise ValueError(f"dof_signs has shape {dof_signs.shape}, expected {shape}")
        if not onp.all(onp.abs(dof_signs) == 1.):
            raise ValueError("dof_signs entries must be +1 or -1")
        return dof_signs

    def get_shape_grads(self):
        """Compute shape function gradient values on physical elements and
        the Jacobian determinant times quadrature weights.

        Returns
        -------
        shape_grads_physical : onp.ndarray
            (num_cells, num_quads, num_nodes, dim)
        JxW : onp.ndarray
            (num_cells, num_quads)
        """
        if self.num_cells == 0:
            return (onp.zeros((0, self.num_quads, self.num_nodes, self.dim)),
                    onp.zeros((0, self.num_quads)))

        # (num_cells, num_nodes, dim)
        physical_coos = onp.take(self.points, self.cells, axis=0)
        # (num_cells, 1, num_nodes, dim, 1) * (1, num_quads, num_nodes, 1, dim) ->
        # (num_cells, num_quads, num_nodes, dim, dim) -> (num_cells, num_quads, 1, dim, dim)
        jacobian_dx_deta = onp.sum(physical_coos[:, None, :, :, None] * self.shape_grads_ref[None, :, :, None, :],
                                   axis=2, keepdims=True)
        jacobian_det = onp.linalg.det(jacobian_dx_deta)[:, :, 0]  # (num_cells, num_quads)
        if onp.any(jacobian_det <= 0.):
            num_bad = int(onp.sum(onp.any(jacobian_det <= 0., axis=1)))
            logger.warning(f"{num_bad} {self.ele_type} element(s) have non-positive Jacobian determinant")
        jacobian_deta_dx = onp.linalg.inv(jacobian_dx_deta)
        # (1, num_quads, num_nodes, 1, dim) @ (num_cells, num_quads, 1, dim, dim)
        # (num_cells, num_quads, num_nodes, 1, dim) -> (num_cells, num_quads, num_nodes, dim)
        shape_grads_physical = (self.shape_grads_ref[None, :, :, None, :] @ jacobian_deta_dx)[:, :, :, 0, :]
        JxW = jacobian_det * self.quad_weights[None, :]
        return shape_grads_physical, JxW

    def get_physical_quad_points(self):
        """Physical coordinates of the quadrature points, (num_cells, num_quads, dim)."""
        physical_coos = onp.take(self.points, self.cells, axis=0)
        # (1, num_quads, num_nodes, 1) * (num_cells, 1, num_nodes, dim) -> (num_cells, num_quads, dim)
        return onp.sum(self.shape_vals[None, :, :, None] * physical_coos[:, None, :, :], axis=2)

    def element_data(self) -> ElementData:
        """Batched element data for all elements as JAX arrays."""
        return ElementData(
            quad_points=np.asarray(self.get_physical_quad_points()),
            shape_vals=np.asarray(onp.broadcast_to(self.shape_vals, (self.num_cells,) + self.shape_vals.shape)),
            shape_grads=np.asarray(self.shape_grads),
            JxW=np.asarray(self.JxW),
        )

    def element_data_at(self, cell_index: int) -> ElementData:
        """Element data of a single element, without the element axis."""
        coos = self.points[self.cells[cell_index]]
        return ElementData(
            quad_points=self.shape_vals @ coos,
            shape_vals=self.shape_vals,
            shape_grads=self.shape_grads[cell_index],
            JxW=self.JxW[cell_index],
        )

