"""
Exceptions raised during linear form assembly.
"""


class AssemblyPreconditionError(ValueError):
    """The host handed the extension inputs it cannot assemble.

    Raised for a target vector whose shape does not match the finite element
    space and for integrator entries that are None. The assembly pass is
    aborted and the host vector is left untouched.
    """


class UnsupportedIntegratorError(NotImplementedError):
    """An integrator has no kernel for the requested assembly level."""
