"""
LinearForm: target vector, domain integrators and the active assembly extension.
"""

from typing import Iterable, List, NamedTuple, Optional
import numpy as onp
import jax.numpy as np

from feform import logger
from feform.config import AssemblyLevel, ExecutionConfig
from feform.errors import AssemblyPreconditionError
from feform.extensions import FullLinearFormExtension, LegacyLinearFormExtension, LinearFormExtension
from feform.fe import FiniteElement
from feform.integrators import has_full_assembly_kernel
from feform.markers import MarkerCache, normalize_filter


EXTENSIONS = {
    AssemblyLevel.LEGACY: LegacyLinearFormExtension,
    AssemblyLevel.FULL: FullLinearFormExtension,
}


class DomainIntegratorEntry(NamedTuple):
    """A registered integrator and its attribute filter (None = all)."""
    integrator: object
    attr_filter: Optional[frozenset]


class LinearForm:
    """Linear functional ``b(v) = sum_i (integrator_i, v)`` on a finite element space.

    Parameters
    ----------
    fe : FiniteElement
        Space the form acts on
    data : array-like, optional
        Initial target vector. A zero vector of size ``fe.num_total_dofs`` is
        allocated when omitted. Its size is checked on every assemble call.
    config : ExecutionConfig, optional
        Options of the data-parallel full assembly

    Notes
    -----
    The form starts at ``AssemblyLevel.LEGACY``. ``set_assembly_level`` swaps in
    a new extension object; ``use_fast_assembly`` picks the full level when
    every integrator supports it and falls back to legacy otherwise.

    Every ``assemble()`` overwrites ``vector``: contributions are accumulated
    onto zeros, never onto the previous content.

    Examples
    --------
    >>> lf = LinearForm(fe)
    >>> lf.add_domain_integrator(DomainLFIntegrator(1.), attr_filter={1})
    >>> lf.set_assembly_level(AssemblyLevel.FULL)
    >>> b = lf.assemble()
    """
    def __init__(self, fe: FiniteElement, data=None, config: Optional[ExecutionConfig] = None) -> None:
        self.fe = fe
        self.config = config if config is not None else ExecutionConfig()
        self.vector = np.zeros(fe.num_total_dofs) if data is None else np.asarray(data)
        self._entries: List[DomainIntegratorEntry] = []
        self._markers = MarkerCache()
        self._level = AssemblyLevel.LEGACY
        self._fast_assembly = False
        self.ext: LinearFormExtension = EXTENSIONS[self._level](self)

    @property
    def assembly_level(self) -> AssemblyLevel:
        return self._level

    @property
    def domain_entries(self) -> List[DomainIntegratorEntry]:
        return list(self._entries)

    @property
    def domain_integrators(self) -> list:
        return [entry.integrator for entry in self._entries]

    @property
    def domain_filters(self) -> list:
        return [entry.attr_filter for entry in self._entries]

    def add_domain_integrator(self, integrator, attr_filter: Optional[Iterable[int]] = None) -> None:
        """Register a domain integrator restricted to elements whose attribute
        is in ``attr_filter`` (every element when None).

        Raises
        ------
        AssemblyPreconditionError
            If ``integrator`` is None.
        """
        if integrator is None:
            raise AssemblyPreconditionError("Cannot add a None domain integrator")
        self._entries.append(DomainIntegratorEntry(integrator, normalize_filter(attr_filter)))
        self._markers.invalidate()

    def remove_domain_integrator(self, index: int) -> DomainIntegratorEntry:
        entry = self._entries.pop(index)
        self._markers.invalidate()
        return entry

    def domain_marker(self, index: int) -> onp.ndarray:
        """Element marker of entry ``index``, built on first use."""
        entry = self._entries[index]
        return self._markers.get(index, self.fe.attributes, entry.attr_filter)

    def supports_full_assembly(self) -> bool:
        return all(has_full_assembly_kernel(entry.integrator) for entry in self._entries)

    def set_assembly_level(self, level) -> None:
        """Select the assembly level; the extension is replaced, not reused."""
        self._level = AssemblyLevel(level)
        self._fast_assembly = False
        self.ext = EXTENSIONS[self._level](self)
        logger.debug(f"Assembly level set to {self._level.name}")

    def use_fast_assembly(self, use_fa: bool) -> None:
        """Prefer full assembly when all integrators support it."""
        self._fast_assembly = use_fa
        if not use_fa and self._level != AssemblyLevel.LEGACY:
            self.set_assembly_level(AssemblyLevel.LEGACY)

    def _select_fast_level(self):
        level = AssemblyLevel.FULL if self.supports_full_assembly() else AssemblyLevel.LEGACY
        if level != self._level:
            if level == AssemblyLevel.LEGACY:
                logger.info("Some domain integrators lack a full assembly kernel, using legacy assembly")
            self._level = level
            self.ext = EXTENSIONS[level](self)

    def assemble(self):
        """Assemble all domain integrators into ``vector`` and return it."""
        if self._fast_assembly:
            self._select_fast_level()
        self.ext.assemble()
        return self.vector

    def update(self, fe: Optional[FiniteElement] = None) -> None:
        """Rebind to ``fe`` (or the current space after a mesh change).

        The vector is reallocated to the new size and cached markers and
        extension state are dropped.
        """
        if fe is not None:
            self.fe = fe
        self.vector = np.zeros(self.fe.num_total_dofs)
        self._markers.invalidate()
        self.ext = EXTENSIONS[self._level](self)

    def __call__(self, u) -> float:
        """Evaluate the assembled form on a dof vector, ``vector . u``."""
        u = np.asarray(u).reshape(-1)
        if u.shape != self.vector.shape:
            raise ValueError(f"Expected a vector of shape {self.vector.shape}, got {u.shape}")
        return np.dot(self.vector, u)

    def __len__(self) -> int:
        return self.vector.shape[0]
