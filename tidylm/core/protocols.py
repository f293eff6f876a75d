"""
Core protocols for tidylm.

Structural interfaces (Protocol rather than ABC) that backends satisfy.
"""

from typing import Protocol, TypeVar, runtime_checkable

from tidylm.core.result import Result

D = TypeVar('D')  # Design type
P = TypeVar('P')  # Parameter payload type


@runtime_checkable
class Backend(Protocol[D, P]):
    """
    Protocol for computational backends.

    A backend takes a validated design and produces a Result carrying a
    parameter payload. Backends are stateless: configuration is fixed at
    construction time, data arrives through the design.
    """

    @property
    def name(self) -> str:
        """
        Backend identifier.

        Convention: '{device}_{algorithm}', e.g. 'cpu_qr', 'cpu_cholesky'.
        """
        ...

    def solve(self, design: D) -> 'Result[P]':
        """
        Execute the computation.

        Raises:
            NumericalError: If numerical issues prevent a solution
            ValidationError: If the design is invalid for this backend
        """
        ...
