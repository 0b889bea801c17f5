"""Domain exceptions for the trust engine."""


class TrustEngineError(Exception):
    """Base class for all trust engine errors."""


class InvalidConfiguration(TrustEngineError):
    """Raised when weights, thresholds or constraints are malformed.

    Only raised while loading configuration or constructing components,
    never in the middle of a scoring request.
    """


class InsufficientData(TrustEngineError):
    """Raised when an operation has nothing to work with.

    Examples: consensus over zero claims, quality scoring without a prior decision.
    """


class ChainStateError(TrustEngineError):
    """Raised on an illegal provenance chain transition (append/close on a closed chain)."""


class UnknownChain(ChainStateError):
    """Raised when a chain id was never opened on this tracker."""


class LedgerError(TrustEngineError):
    """Raised when an append to the decision ledger would violate its history."""


class UnknownDecision(LedgerError):
    """Raised when a decision id is not in the ledger."""


__all__ = [
    "TrustEngineError",
    "InvalidConfiguration",
    "InsufficientData",
    "ChainStateError",
    "UnknownChain",
    "LedgerError",
    "UnknownDecision",
]
