"""
Mesh management and generation utilities for feform.

This module provides the Mesh class holding node coordinates, element
connectivity and per-element attribute tags, plus structured mesh generators
and meshio-based file input.
"""

from typing import Optional, Iterable, TYPE_CHECKING
import numpy as onp
import meshio

from feform import logger

if TYPE_CHECKING:
    from numpy.typing import NDArray


# Cell data keys searched, in order, for element attributes when reading files
ATTRIBUTE_KEYS = ('attribute', 'gmsh:physical', 'cell_tags', 'medit:ref')


class Mesh():
    """Finite element mesh manager.

    Parameters
    ----------
    points : NDArray
        Node coordinates with shape (num_total_nodes, dim)
    cells : NDArray
        Element connectivity with shape (num_cells, num_nodes_per_element)
    ele_type : str, optional
        Element type identifier (default: 'TET4')
    attributes : NDArray, optional
        Integer attribute per element with shape (num_cells,). Every element
        gets attribute 1 when omitted.

    Notes
    -----
    The element connectivity array should follow the meshio node ordering
    conventions for each element type. Attributes are 1-based by convention
    but any non-negative integers are accepted.
    """
    def __init__(self, points: 'NDArray', cells: 'NDArray', ele_type: str = 'TET4',
                 attributes: Optional['NDArray'] = None) -> None:
        self.points = onp.asarray(points, dtype=onp.float64)
        self.cells = onp.asarray(cells, dtype=onp.int64)
        self.ele_type = ele_type

        if self.cells.ndim != 2:
            raise ValueError(f"cells must be a 2D array, got shape {self.cells.shape}")

        self.attributes = _check_attributes(attributes, self.cells.shape[0])

    @property
    def num_cells(self) -> int:
        return self.cells.shape[0]

    @property
    def dim(self) -> int:
        return self.points.shape[1]

    def attribute_set(self) -> set:
        """Distinct attribute values present on the mesh."""
        return set(int(a) for a in onp.unique(self.attributes))

    def set_attributes(self, attributes: 'NDArray') -> None:
        """Replace the element attribute table.

        Any LinearForm built on this mesh must call ``update()`` afterwards so
        its cached element markers are rebuilt.
        """
        self.attributes = _check_attributes(attributes, self.num_cells)


def get_meshio_cell_type(ele_type: str) -> str:
    """Convert feform element type to meshio-compatible cell type string.

    Parameters
    ----------
    ele_type : str
        Element type identifier (e.g., 'TET4', 'HEX8', 'TRI3', 'QUAD4')

    Returns
    -------
    cell_type : str
        Meshio-compatible cell type name

    Raises
    ------
    NotImplementedError
        If the element type is not supported
    """
    if ele_type == 'SEG2':
        cell_type = 'line'
    elif ele_type == 'SEG3':
        cell_type = 'line3'
    elif ele_type == 'TET4':
        cell_type = 'tetra'
    elif ele_type == 'TET10':
        cell_type = 'tetra10'
    elif ele_type == 'HEX8':
        cell_type = 'hexahedron'
    elif ele_type == 'TRI3':
        cell_type = 'triangle'
    elif ele_type == 'TRI6':
        cell_type = 'triangle6'
    elif ele_type == 'QUAD4':
        cell_type = 'quad'
    elif ele_type == 'QUAD9':
        cell_type = 'quad9'
    else:
        raise NotImplementedError(f"Element type '{ele_type}' is not supported")
    return cell_type


def get_ele_type(cell_type: str) -> str:
    """Inverse of :func:`get_meshio_cell_type`."""
    for ele_type in ('SEG2', 'SEG3', 'TET4', 'TET10', 'HEX8', 'TRI3', 'TRI6', 'QUAD4', 'QUAD9'):
        if get_meshio_cell_type(ele_type) == cell_type:
            return ele_type
    raise NotImplementedError(f"meshio cell type '{cell_type}' is not supported")


def interval_mesh(Nx: int, domain_x: float) -> Mesh:
    """Generate a uniform SEG2 mesh on [0, domain_x]."""
    points = onp.linspace(0, domain_x, Nx + 1).reshape(-1, 1)
    inds = onp.arange(Nx + 1)
    cells = onp.stack((inds[:-1], inds[1:]), axis=1)
    return Mesh(points, cells, ele_type='SEG2')


def rectangle_mesh(Nx: int, Ny: int, domain_x: float, domain_y: float) -> Mesh:
    """Generate structured QUAD4 mesh for rectangular domain.

    Parameters
    ----------
    Nx : int
        Number of elements along x-axis
    Ny : int
        Number of elements along y-axis
    domain_x : float
        Length of domain along x-axis
    domain_y : float
        Length of domain along y-axis

    Returns
    -------
    mesh : Mesh
        Structured rectangular mesh with QUAD4 elements

    Notes
    -----
    The mesh spans from (0, 0) to (domain_x, domain_y) with uniform element spacing.
    Elements are oriented counter-clockwise.
    """
    dim = 2
    x = onp.linspace(0, domain_x, Nx + 1)
    y = onp.linspace(0, domain_y, Ny + 1)
    xv, yv = onp.meshgrid(x, y, indexing='ij')
    points_xy = onp.stack((xv, yv), axis=dim)
    points = points_xy.reshape(-1, dim)
    points_inds = onp.arange(len(points))
    points_inds_xy = points_inds.reshape(Nx + 1, Ny + 1)
    inds1 = points_inds_xy[:-1, :-1]
    inds2 = points_inds_xy[1:, :-1]
    inds3 = points_inds_xy[1:, 1:]
    inds4 = points_inds_xy[:-1, 1:]
    cells = onp.stack((inds1, inds2, inds3, inds4), axis=dim).reshape(-1, 4)
    mesh = meshio.Mesh(points=points, cells={'quad': cells})
    return Mesh(mesh.points, mesh.cells_dict['quad'], ele_type="QUAD4")


def triangle_mesh(Nx: int, Ny: int, domain_x: float, domain_y: float) -> Mesh:
    """Generate structured TRI3 mesh by splitting each quad along its diagonal.

    Every quad of :func:`rectangle_mesh` becomes two counter-clockwise
    triangles, so interior edges and vertices are shared by many elements.
    """
    quad_mesh = rectangle_mesh(Nx, Ny, domain_x, domain_y)
    quads = quad_mesh.cells
    lower = quads[:, [0, 1, 2]]
    upper = quads[:, [0, 2, 3]]
    cells = onp.stack((lower, upper), axis=1).reshape(-1, 3)
    return Mesh(quad_mesh.points, cells, ele_type="TRI3")


def box_mesh(Nx: int, Ny: int, Nz: int, domain_x: float, domain_y: float, domain_z: float) -> Mesh:
    """Generate structured HEX8 mesh for box domain.

    Parameters
    ----------
    Nx : int
        Number of elements along x-axis
    Ny : int
        Number of elements along y-axis
    Nz : int
        Number of elements along z-axis
    domain_x : float
        Length of domain along x-axis
    domain_y : float
        Length of domain along y-axis
    domain_z : float
        Length of domain along z-axis

    Returns
    -------
    mesh : Mesh
        Structured box mesh with HEX8 elements
    """
    dim = 3
    x = onp.linspace(0, domain_x, Nx + 1)
    y = onp.linspace(0, domain_y, Ny + 1)
    z = onp.linspace(0, domain_z, Nz + 1)
    xv, yv, zv = onp.meshgrid(x, y, z, indexing='ij')
    points_xyz = onp.stack((xv, yv, zv), axis=dim)
    points = points_xyz.reshape(-1, dim)
    points_inds = onp.arange(len(points))
    points_inds_xyz = points_inds.reshape(Nx + 1, Ny + 1, Nz + 1)
    inds1 = points_inds_xyz[:-1, :-1, :-1]
    inds2 = points_inds_xyz[1:, :-1, :-1]
    inds3 = points_inds_xyz[1:, 1:, :-1]
    inds4 = points_inds_xyz[:-1, 1:, :-1]
    inds5 = points_inds_xyz[:-1, :-1, 1:]
    inds6 = points_inds_xyz[1:, :-1, 1:]
    inds7 = points_inds_xyz[1:, 1:, 1:]
    inds8 = points_inds_xyz[:-1, 1:, 1:]
    cells = onp.stack((inds1, inds2, inds3, inds4, inds5, inds6, inds7, inds8),
                      axis=dim).reshape(-1, 8)
    mesh = meshio.Mesh(points=points, cells={'hexahedron': cells})
    return Mesh(mesh.points, mesh.cells_dict['hexahedron'], ele_type="HEX8")


def from_meshio(meshio_mesh: meshio.Mesh, ele_type: str,
                attribute_keys: Iterable[str] = ATTRIBUTE_KEYS) -> Mesh:
    """Build a Mesh from the cells of one type in a meshio mesh.

    Element attributes are taken from the first cell data entry found under
    ``attribute_keys``. Points are truncated to the topological dimension of
    the element so that planar meshes stored with a zero z column work.
    """
    cell_type = get_meshio_cell_type(ele_type)
    cells = meshio_mesh.cells_dict.get(cell_type)
    if cells is None:
        raise ValueError(f"Mesh has no cells of type '{cell_type}', found {list(meshio_mesh.cells_dict)}")

    attributes = None
    for key in attribute_keys:
        if key in meshio_mesh.cell_data_dict and cell_type in meshio_mesh.cell_data_dict[key]:
            attributes = meshio_mesh.cell_data_dict[key][cell_type]
            logger.debug(f"Reading element attributes from cell data '{key}'")
            break

    dim = _topological_dim(ele_type)
    points = meshio_mesh.points[:, :dim]
    return Mesh(points, cells, ele_type=ele_type, attributes=attributes)


def read_mesh(filename: str, ele_type: str) -> Mesh:
    """Read a mesh file with meshio and keep the cells of ``ele_type``."""
    logger.info(f"Reading mesh from {filename}")
    return from_meshio(meshio.read(filename), ele_type)


def _topological_dim(ele_type: str) -> int:
    if ele_type.startswith('SEG'):
        return 1
    if ele_type.startswith(('TRI', 'QUAD')):
        return 2
    if ele_type.startswith(('TET', 'HEX')):
        return 3
    raise NotImplementedError(f"Element type '{ele_type}' is not supported")


def _check_attributes(attributes, num_cells):
    if attributes is None:
        return onp.ones(num_cells, dtype=onp.int32)
    attributes = onp.asarray(attributes, dtype=onp.int32).reshape(-1)
    if attributes.shape[0] != num_cells:
        raise ValueError(
            f"attributes has {attributes.shape[0]} entries, "
            f"expected one per element ({num_cells})"
        )
    if onp.any(attributes < 0):
        raise ValueError("element attributes must be non-negative")
    return attributes
