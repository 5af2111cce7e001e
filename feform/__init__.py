"""feform - linear form assembly over finite element meshes with JAX"""
from .__version__ import __version__
from .logger_setup import setup_logger

logger = setup_logger(__name__)

__all__ = [
    'LinearForm', 'AssemblyLevel', 'ExecutionConfig',
    'LinearFormExtension', 'FullLinearFormExtension', 'LegacyLinearFormExtension',
    'DomainIntegrator', 'DomainLFIntegrator', 'VectorDomainLFIntegrator', 'DomainLFGradIntegrator',
    'ElementData', 'FiniteElement', 'Mesh', 'resolve_markers', 'MarkerCache',
    'AssemblyPreconditionError', 'UnsupportedIntegratorError',
]

def __getattr__(name):
    if name in __all__:
        from importlib import import_module
        module_map = {
            'LinearForm': 'feform.linear_form',
            'AssemblyLevel': 'feform.config',
            'ExecutionConfig': 'feform.config',
            'LinearFormExtension': 'feform.extensions',
            'FullLinearFormExtension': 'feform.extensions',
            'LegacyLinearFormExtension': 'feform.extensions',
            'DomainIntegrator': 'feform.integrators',
            'DomainLFIntegrator': 'feform.integrators',
            'VectorDomainLFIntegrator': 'feform.integrators',
            'DomainLFGradIntegrator': 'feform.integrators',
            'ElementData': 'feform.fe',
            'FiniteElement': 'feform.fe',
            'Mesh': 'feform.mesh',
            'resolve_markers': 'feform.markers',
            'MarkerCache': 'feform.markers',
            'AssemblyPreconditionError': 'feform.errors',
            'UnsupportedIntegratorError': 'feform.errors',
        }
        mod = import_module(module_map[name])
        return getattr(mod, name)
    raise AttributeError(f"module 'feform' has no attribute '{name}'")
