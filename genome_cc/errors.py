from __future__ import annotations


class ChaincodeError(Exception):
    """Base class for failures surfaced to the caller as an error response."""
    pass


class InputError(ChaincodeError):
    """Missing, malformed or empty caller input."""
    pass


class NotFound(ChaincodeError):
    """Read, transfer or delete target does not exist."""
    pass


class AlreadyExists(ChaincodeError):
    """A gene with the same name is already stored."""
    pass


class AccessDenied(ChaincodeError):
    """The caller's organisation may not access the collection."""
    pass


class SerializationError(ChaincodeError):
    """A document could not be encoded or decoded."""
    pass


class StoreError(ChaincodeError):
    """The ledger rejected a state operation for a reason other than access."""
    pass


class UnknownOperation(ChaincodeError):
    """Dispatch found no handler for the function name."""
    pass
