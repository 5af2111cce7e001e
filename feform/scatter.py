"""
Race-free accumulation of element vectors into a global vector.

Neighbouring elements share dofs, so a batch of elements evaluated together
writes several values to the same global entry. Three equivalent ways of
accumulating them are provided:

- ``atomic``: XLA scatter-add, which sums duplicate indices (hardware atomics
  on GPU).
- ``coloring``: elements are grouped by color so that no two elements of one
  batch share a dof; every index in a batch is then unique and a plain
  gather/set is safe.
- ``reduce``: entries are sorted by dof once (the dof-to-element reverse map)
  and each dof sums its contributions with a sorted segment reduction.

Padding entries carry dof indices at or beyond ``len(vector)``; every strategy
drops them.
"""

from typing import List, NamedTuple, Optional
import numpy as onp
import jax


class Batch(NamedTuple):
    """Elements evaluated concurrently, padded to a uniform width."""
    cells: onp.ndarray  # (width,) element ids, padding points at element 0
    valid: onp.ndarray  # (width,) 1 for real elements, 0 for padding
    dofs: onp.ndarray  # (width, num_local_dofs), padding beyond num_dofs
    signs: onp.ndarray  # (width, num_local_dofs)
    order: Optional[onp.ndarray]  # (width*num_local_dofs,) dof-sorted entry order, 'reduce' only


def scatter_add_atomic(vector, dofs, signs, values, order=None):
    """``vector[dofs] += signs * values`` with duplicate indices accumulated."""
    return vector.at[dofs.reshape(-1)].add((signs * values).reshape(-1), mode='drop')


def scatter_add_colored(vector, dofs, signs, values, order=None):
    """Accumulate a batch whose dof indices are pairwise distinct.

    Only valid for batches of a single color; duplicates would lose updates.
    """
    flat_dofs = dofs.reshape(-1)
    current = vector.at[flat_dofs].get(mode='fill', fill_value=0.)
    return vector.at[flat_dofs].set(current + (signs * values).reshape(-1), mode='drop')


def scatter_add_reduce(vector, dofs, signs, values, order=None):
    """Gather every contribution by dof, reduce per dof, then add once."""
    flat_dofs = dofs.reshape(-1)
    flat_vals = (signs * values).reshape(-1)
    if order is not None:
        flat_dofs = flat_dofs[order]
        flat_vals = flat_vals[order]
    dof_sums = jax.ops.segment_sum(flat_vals, flat_dofs, num_segments=vector.shape[0],
                                   indices_are_sorted=order is not None)
    return vector + dof_sums


SCATTER_FNS = {
    'atomic': scatter_add_atomic,
    'coloring': scatter_add_colored,
    'reduce': scatter_add_reduce,
}


def color_elements(cell_dofs) -> onp.ndarray:
    """Greedy coloring such that elements of one color share no dof.

    Parameters
    ----------
    cell_dofs : NDArray
        Element-to-dof map, shape (num_cells, num_local_dofs)

    Returns
    -------
    colors : onp.ndarray
        int32 color per element, colors numbered from 0
    """
    cell_dofs = onp.asarray(cell_dofs)
    num_cells = cell_dofs.shape[0]
    colors = onp.zeros(num_cells, dtype=onp.int32)
    if num_cells == 0:
        return colors

    dof_colors = [set() for _ in range(int(cell_dofs.max()) + 1)]
    for cell in range(num_cells):
        used = set()
        for dof in cell_dofs[cell]:
            used |= dof_colors[dof]
        color = 0
        while color in used:
            color += 1
        colors[cell] = color
        for dof in cell_dofs[cell]:
            dof_colors[dof].add(color)
    return colors


def reverse_map_order(flat_dofs) -> onp.ndarray:
    """Entry permutation that sorts the flattened element-to-dof map by dof.

    Consecutive runs of the permuted entries are the contributions of one dof,
    which is the dof-to-element reverse map in CSR order.
    """
    return onp.argsort(onp.asarray(flat_dofs).reshape(-1), kind='stable')


def make_batches(fe, lanes: Optional[int], scatter: str) -> List[Batch]:
    """Split the elements of ``fe`` into uniform-width batches.

    ``lanes=None`` puts every element into a single batch, except for the
    coloring strategy which always yields at least one batch per color.
    """
    num_cells = fe.num_cells
    if num_cells == 0:
        return []

    if scatter == 'coloring':
        colors = color_elements(fe.cell_dofs)
        groups = [onp.nonzero(colors == c)[0] for c in range(int(colors.max()) + 1)]
    else:
        groups = [onp.arange(num_cells)]

    width = lanes if lanes is not None else max(len(g) for g in groups)
    num_local_dofs = fe.cell_dofs.shape[1]

    batches = []
    for group in groups:
        for start in range(0, len(group), width):
            cells = group[start:start + width]
            num_pad = width - len(cells)
            pad_dofs = fe.num_total_dofs + onp.arange(num_pad * num_local_dofs).reshape(num_pad, num_local_dofs)
            dofs = onp.concatenate([fe.cell_dofs[cells], pad_dofs], axis=0)
            signs = onp.concatenate([fe.cell_signs[cells], onp.ones((num_pad, num_local_dofs))], axis=0)
            valid = onp.concatenate([onp.ones(len(cells), dtype=onp.int32), onp.zeros(num_pad, dtype=onp.int32)])
            cells = onp.concatenate([cells, onp.zeros(num_pad, dtype=cells.dtype)])
            order = reverse_map_order(dofs) if scatter == 'reduce' else None
            batches.append(Batch(cells=cells, valid=valid, dofs=dofs, signs=signs, order=order))
    return batches
