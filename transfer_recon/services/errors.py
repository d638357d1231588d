class InvalidCandidateError(ValueError):
    """A candidate pair violates the outgoing/incoming contract.

    Raised for programming errors only: the candidate generator never
    produces such pairs, so seeing one means a caller bypassed it.
    """


class DecisionError(Exception):
    """Base class for user-facing decision failures."""


class AlreadyResolvedError(DecisionError):
    pass


class InvalidReferenceError(DecisionError):
    pass


class TransactionNotFoundError(InvalidReferenceError):
    pass


class InvalidPairError(DecisionError):
    pass


class StaleLedgerError(RuntimeError):
    """A conditional ledger write found a transaction in an unexpected state."""
