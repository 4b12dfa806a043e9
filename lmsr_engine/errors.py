"""Exceptions raised by the LMSR quote engine.

Three kinds of failure are distinguished. A ``PreconditionViolation`` is a
programming error on the caller's side (non-positive liquidity, negative
quantities) and is raised immediately. ``InsufficientShares`` is an ordinary
user error: the trader asked to sell more than the market has issued.
``NonConvergence`` should never be seen in practice; it means the share
solver could not bracket a root, which the convexity of the cost function
rules out for finite inputs.
"""


class LmsrError(Exception):
    """Base class for all engine errors."""


class PreconditionViolation(LmsrError, ValueError):
    """An input is outside the domain of the pricing math."""


class InsufficientShares(LmsrError):
    """A sell request exceeds the outstanding shares for its outcome."""

    def __init__(self, outcome, requested, outstanding):
        self.outcome = outcome
        self.requested = requested
        self.outstanding = outstanding
        super().__init__(
            f"cannot sell {requested} {outcome} shares; only {outstanding} outstanding"
        )


class NonConvergence(LmsrError, ArithmeticError):
    """The share solver failed to find a root within its budget."""
