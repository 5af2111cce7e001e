"""
Assembly extensions of a LinearForm, one per assembly level.

An extension holds a non-owning reference to its host LinearForm and reads
the integrator entries, element markers, finite element space, execution
config and target vector from it on every call. ``assemble()`` always starts
from a zero vector and rebinds ``lf.vector`` to the result, so calling it
repeatedly with unchanged inputs gives the same vector.
"""

import abc
import numpy as onp
import jax
import jax.numpy as np

from feform import logger
from feform.errors import AssemblyPreconditionError, UnsupportedIntegratorError
from feform.integrators import has_full_assembly_kernel
from feform.scatter import SCATTER_FNS, make_batches
from feform.utils import timeit


class LinearFormExtension(abc.ABC):
    """Assembly strategy of a LinearForm.

    Parameters
    ----------
    lf : LinearForm
        Host form. Not owned: the host outlives the extension and the
        extension never releases the host or its integrators.
    """
    def __init__(self, lf):
        self.lf = lf

    @abc.abstractmethod
    def assemble(self) -> None:
        """Assemble every domain integrator into ``lf.vector``."""

    def check_preconditions(self):
        """Validate the host state once per assemble call.

        Raises
        ------
        AssemblyPreconditionError
            If the target vector does not match the space, is not floating
            point, or an entry has no integrator.
        """
        lf = self.lf
        expected = (lf.fe.num_total_dofs,)
        shape = getattr(lf.vector, 'shape', None)
        if shape != expected:
            raise AssemblyPreconditionError(
                f"Target vector has shape {shape}, expected {expected} for the finite element space"
            )
        if not np.issubdtype(lf.vector.dtype, np.inexact):
            raise AssemblyPreconditionError(
                f"Target vector has dtype {lf.vector.dtype}, a floating point vector is required"
            )
        for index, entry in enumerate(lf.domain_entries):
            if entry.integrator is None:
                raise AssemblyPreconditionError(f"Domain integrator {index} is None")


class FullLinearFormExtension(LinearFormExtension):
    """Fully assembled, data-parallel evaluation of a linear form.

    For every integrator entry the integrator kernel is vmapped over batches of
    ``config.lanes`` elements, weighted by the element markers, and the batch
    is scatter-added into the vector with the strategy in ``config.scatter``.
    Only integrators providing ``get_kernel`` are supported.

    Extension-owned state (batches, element data, compiled kernels) is cached
    per finite element space and execution config and dropped with the
    extension.
    """
    def __init__(self, lf):
        super().__init__(lf)
        self._plan_fe = None
        self._plan_config = None
        self._batches = None
        self._element_data = None
        self._kernels = {}

    def _prepare(self, fe, config):
        if self._plan_fe is not fe or self._plan_config != config:
            logger.debug(f"Building assembly plan: {fe.num_cells} elements, lanes={config.lanes}, scatter={config.scatter}")
            self._batches = make_batches(fe, config.lanes, config.scatter)
            self._element_data = fe.element_data()
            self._kernels = {}
            self._plan_fe = fe
            self._plan_config = config
        return self._batches, self._element_data

    def _get_batched_kernel(self, index, integrator, fe, use_jit):
        cached = self._kernels.get(index)
        if cached is not None and cached[0] is integrator:
            return cached[1]
        batched = jax.vmap(integrator.get_kernel(fe))
        if use_jit:
            batched = jax.jit(batched)
        self._kernels[index] = (integrator, batched)
        return batched

    @timeit
    def assemble(self) -> None:
        lf = self.lf
        fe = lf.fe
        config = lf.config
        self.check_preconditions()
        entries = lf.domain_entries
        for entry in entries:
            if not has_full_assembly_kernel(entry.integrator):
                raise UnsupportedIntegratorError(
                    f"{type(entry.integrator).__name__} cannot be used with full assembly"
                )

        vector = np.zeros_like(lf.vector)
        if fe.num_cells == 0 or len(entries) == 0:
            lf.vector = vector
            return

        batches, element_data = self._prepare(fe, config)
        scatter_fn = SCATTER_FNS[config.scatter]
        logger.debug(f"Full assembly of {len(entries)} integrator(s) in {len(batches)} batch(es)")

        for index, entry in enumerate(entries):
            markers = lf.domain_marker(index)
            batched_kernel = self._get_batched_kernel(index, entry.integrator, fe, config.jit)
            for batch in batches:
                batch_data = jax.tree_util.tree_map(lambda x: x[batch.cells], element_data)
                batch_markers = np.asarray(markers[batch.cells] * batch.valid, dtype=vector.dtype)
                values = batched_kernel(batch_data, batch_markers)
                vector = scatter_fn(vector, batch.dofs, batch.signs, values, batch.order)

        lf.vector = vector.block_until_ready()


class LegacyLinearFormExtension(LinearFormExtension):
    """Element-by-element assembly on the host.

    A single-lane loop that skips unmarked elements and accumulates with
    ``numpy.add.at``. Accepts every integrator with element assembly,
    including those without a full assembly kernel, and serves as the
    sequential reference.
    """

    @timeit
    def assemble(self) -> None:
        lf = self.lf
        fe = lf.fe
        self.check_preconditions()
        for entry in lf.domain_entries:
            if not callable(getattr(entry.integrator, 'assemble_element_vector', None)):
                raise UnsupportedIntegratorError(
                    f"{type(entry.integrator).__name__} has no element assembly"
                )

        vector = onp.zeros(lf.vector.shape, dtype=lf.vector.dtype)
        for index, entry in enumerate(lf.domain_entries):
            markers = lf.domain_marker(index)
            for cell in onp.nonzero(markers)[0]:
                local = onp.asarray(entry.integrator.assemble_element_vector(fe, cell)).reshape(-1)
                onp.add.at(vector, fe.cell_dofs[cell], fe.cell_signs[cell] * local)

        lf.vector = np.asarray(vector)
