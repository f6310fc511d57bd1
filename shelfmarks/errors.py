"""Error taxonomy shared by the store, the guard and the mutation protocols.

Every error carries a stable ``kind`` string so front ends can show a generic
failure while still logging what actually went wrong.
"""

from __future__ import annotations


class ShelfError(RuntimeError):
    kind = "ShelfError"


class Unauthorized(ShelfError):
    kind = "Unauthorized"


class NotFound(ShelfError):
    kind = "NotFound"


class ValidationError(ShelfError):
    kind = "ValidationError"


class InvalidHierarchy(ShelfError):
    kind = "InvalidHierarchy"


class ConflictError(ShelfError):
    kind = "ConflictError"


class StorageError(ShelfError):
    kind = "StorageError"
