"""
Domain error taxonomy.

Every error raised by the ledger services derives from LedgerError and carries
enough structure (code, HTTP status, details) for the HTTP layer to render it
verbatim. None of these errors leave the catalog half-mutated: services raise
them inside run_with_retry(), which rolls the session back before propagating.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for domain errors surfaced to callers."""

    code = "LEDGER_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class ValidationError(LedgerError):
    """400-level input problem (rejected before any mutation)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class DuplicateBarcodeError(LedgerError):
    """409: creating a SKU whose barcode already exists."""

    code = "DUPLICATE_BARCODE"
    status_code = 409

    def __init__(self, barcode: str):
        super().__init__(
            f"Game with barcode {barcode} already exists",
            details={"barcode": barcode},
        )
        self.barcode = barcode


class NotFoundError(LedgerError):
    """404: unknown transaction or SKU reference."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, identifier):
        super().__init__(
            f"{entity} {identifier} not found",
            details={"entity": entity, "identifier": identifier},
        )
        self.entity = entity
        self.identifier = identifier


class InvalidTransitionError(LedgerError):
    """Status change not permitted from the current state."""

    code = "INVALID_TRANSITION"
    status_code = 400

    def __init__(self, current: str, requested: str, allowed):
        allowed = sorted(allowed)
        super().__init__(
            "Invalid status transition",
            details={
                "current_status": current,
                "requested_status": requested,
                "available_transitions": allowed,
            },
        )
        self.current = current
        self.requested = requested
        self.allowed = allowed


class InsufficientStockError(LedgerError):
    """409: a checked decrement exceeds available variant stock."""

    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(
        self,
        barcode: str,
        variant: str,
        available: int,
        requested: int,
        *,
        title: str | None = None,
        items: list[dict] | None = None,
    ):
        label = title or barcode
        super().__init__(
            f"Insufficient stock for {label} ({variant}). "
            f"Available: {available}, Requested: {requested}",
            details={
                "barcode": barcode,
                "variant": variant,
                "available": available,
                "requested": requested,
                "items": items or [{
                    "barcode": barcode,
                    "variant": variant,
                    "available": available,
                    "requested": requested,
                }],
            },
        )
        self.barcode = barcode
        self.variant = variant
        self.available = available
        self.requested = requested
