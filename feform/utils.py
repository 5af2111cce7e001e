import os
import time
from functools import wraps
import numpy as onp
import meshio

from feform import logger
from feform.mesh import get_meshio_cell_type


def save_sol(fe, sol, sol_file, cell_infos=None, point_infos=None):
    """Write a dof vector of ``fe`` as VTK point data.

    ``sol`` is reshaped to (num_total_nodes, vec); ``cell_infos`` and
    ``point_infos`` are lists of (name, data) pairs. Element attributes are
    always written as the 'attribute' cell data.
    """
    cell_type = get_meshio_cell_type(fe.ele_type)
    sol_dir = os.path.dirname(sol_file)
    if sol_dir:
        os.makedirs(sol_dir, exist_ok=True)
    points = onp.asarray(fe.points)
    if points.shape[1] < 3:
        points = onp.hstack((points, onp.zeros((len(points), 3 - points.shape[1]))))
    out_mesh = meshio.Mesh(points=points, cells={cell_type: onp.asarray(fe.cells)})
    out_mesh.point_data['sol'] = onp.array(sol, dtype=onp.float32).reshape(fe.num_total_nodes, fe.vec)
    out_mesh.cell_data['attribute'] = [onp.asarray(fe.attributes, dtype=onp.int32)]
    if cell_infos is not None:
        for cell_info in cell_infos:
            name, data = cell_info
            assert data.shape == (fe.num_cells,), f"cell data wrong shape, get {data.shape}, while num_cells = {fe.num_cells}"
            out_mesh.cell_data[name] = [onp.array(data, dtype=onp.float32)]
    if point_infos is not None:
        for point_info in point_infos:
            name, data = point_info
            assert len(data) == fe.num_total_nodes, "point data wrong shape!"
            out_mesh.point_data[name] = onp.array(data, dtype=onp.float32)
    out_mesh.write(sol_file)
    logger.debug(f"Saved solution to {sol_file}")


# A simpler decorator for printing the timing results of a function
def timeit(func):

    @wraps(func)
    def timeit_wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        end_time = time.perf_counter()
        total_time = end_time - start_time
        logger.debug(f'Function {func.__qualname__} took {total_time:.4f} seconds')
        return result

    return timeit_wrapper
