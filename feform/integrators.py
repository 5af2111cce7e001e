"""
Domain integrators for linear forms.

An integrator turns the geometry and basis data of one element into a local
vector of length ``num_nodes * vec``. Integrators that can run under full
assembly provide ``get_kernel``, returning a pure JAX function of
``(element_data, marker)`` that is vmapped over elements by the assembly
extension. The kernel multiplies its result by the marker instead of branching,
so masked-out elements yield zeros at the same cost as active ones.
"""

import numpy as onp
import jax
import jax.numpy as np

from feform.errors import UnsupportedIntegratorError


def _as_coefficient(f):
    """Wrap a constant into a function of the physical point."""
    if callable(f):
        return f
    value = np.asarray(f)
    return lambda x: value


def _eval_at_quads(f, quad_points):
    """Evaluate ``f(x)`` at every quadrature point -> (num_quads, ...)."""
    return jax.vmap(lambda x: np.asarray(f(x), dtype=quad_points.dtype))(quad_points)


def has_full_assembly_kernel(integrator) -> bool:
    """True if ``integrator`` can run under full assembly.

    Objects that do not declare ``supports_full_assembly`` are treated as
    legacy-only.
    """
    return bool(getattr(integrator, 'supports_full_assembly', False))


class DomainIntegrator:
    """Base class for domain linear-form integrators.

    Subclasses implement :meth:`get_kernel` for full (device) assembly and may
    override :meth:`assemble_element_vector` for the legacy element loop.
    The legacy kernel is built once per finite element space and reused for
    every element.
    """

    _legacy_kernel = None

    @property
    def supports_full_assembly(self) -> bool:
        return type(self).get_kernel is not DomainIntegrator.get_kernel

    def get_kernel(self, fe):
        """Return ``kernel(element_data, marker) -> (num_nodes*vec,)``.

        ``element_data`` is a single element's :class:`~feform.fe.ElementData`
        and ``marker`` is 0 or 1.
        """
        raise UnsupportedIntegratorError(
            f"{type(self).__name__} does not provide a full assembly kernel"
        )

    def assemble_element_vector(self, fe, cell_index: int) -> onp.ndarray:
        """Local vector of one element, used by the legacy element loop."""
        if self._legacy_kernel is None or self._legacy_kernel[0] is not fe:
            self._legacy_kernel = (fe, self.get_kernel(fe))
        kernel = self._legacy_kernel[1]
        return onp.asarray(kernel(fe.element_data_at(cell_index), 1))

    def __repr__(self):
        return f"{type(self).__name__}()"


class DomainLFIntegrator(DomainIntegrator):
    """Source term ``(f, v)``.

    Parameters
    ----------
    f : callable or float
        ``f(x)`` returning a scalar, applied to every component, or an array
        of length ``vec``. A constant is accepted as well.
    """
    def __init__(self, f):
        self.f = _as_coefficient(f)

    def get_kernel(self, fe):
        vec = fe.vec
        f = self.f

        def kernel(data, marker):
            num_quads = data.JxW.shape[0]
            # (num_quads,) or (num_quads, vec) -> (num_quads, vec)
            f_vals = _eval_at_quads(f, data.quad_points).reshape(num_quads, -1)
            f_vals = np.broadcast_to(f_vals, (num_quads, vec))
            # (num_quads, num_nodes, 1) * (num_quads, 1, vec) * (num_quads, 1, 1) -> (num_nodes, vec)
            val = np.sum(data.shape_vals[:, :, None] * f_vals[:, None, :] * data.JxW[:, None, None], axis=0)
            return val.reshape(-1) * marker

        return kernel


class VectorDomainLFIntegrator(DomainIntegrator):
    """Vector source term ``(f, v)`` for spaces with ``vec > 1``.

    ``f(x)`` must return an array of length ``vec``.
    """
    def __init__(self, f):
        self.f = _as_coefficient(f)

    def get_kernel(self, fe):
        vec = fe.vec
        f = self.f

        def kernel(data, marker):
            num_quads = data.JxW.shape[0]
            f_vals = _eval_at_quads(f, data.quad_points).reshape(num_quads, vec)
            val = np.einsum('qn,qv,q->nv', data.shape_vals, f_vals, data.JxW)
            return val.reshape(-1) * marker

        return kernel


class DomainLFGradIntegrator(DomainIntegrator):
    """Gradient source term ``(f, grad v)``.

    ``f(x)`` returns an array of shape (dim,) for scalar spaces or
    (vec, dim) for vector spaces.
    """
    def __init__(self, f):
        self.f = _as_coefficient(f)

    def get_kernel(self, fe):
        vec, dim = fe.vec, fe.dim
        f = self.f

        def kernel(data, marker):
            num_quads = data.JxW.shape[0]
            f_vals = _eval_at_quads(f, data.quad_points).reshape(num_quads, vec, dim)
            # (num_quads, num_nodes, dim) x (num_quads, vec, dim) x (num_quads,) -> (num_nodes, vec)
            val = np.einsum('qnd,qvd,q->nv', data.shape_grads, f_vals, data.JxW)
            return val.reshape(-1) * marker

        return kernel
