"""TagTrack IMS — Domain errors raised by the allocation/fulfillment engine and catalog services."""
from typing import Any


class InventoryError(Exception):
    """Base class. `code` is the stable machine-readable kind surfaced in API error envelopes."""

    code = "INVENTORY_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFound(InventoryError):
    code = "NOT_FOUND"


class ValidationFailed(InventoryError):
    code = "VALIDATION_FAILED"


class InsufficientStock(InventoryError):
    """Requested quantity exceeds the available instances of a SKU. Nothing is allocated."""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, sku_id: Any, requested: int, available: int):
        self.sku_id = sku_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot allocate {requested} instance(s) of SKU {sku_id}: only {available} available",
            {"sku_id": str(sku_id), "requested": requested, "available": available},
        )


class InvalidInstanceSelection(InventoryError):
    """A manually selected instance is unknown, already held, or belongs to another SKU."""

    code = "INVALID_INSTANCE_SELECTION"


class TagNotFound(InventoryError):
    code = "TAG_NOT_FOUND"

    def __init__(self, tag_id: Any):
        self.tag_id = tag_id
        super().__init__(f"Tag {tag_id} not found", {"tag_id": str(tag_id)})


class NotInTag(InventoryError):
    """A SKU line or instance id referenced in a fulfillment is not held by the tag."""

    code = "NOT_IN_TAG"


class InvalidTagState(InventoryError):
    code = "INVALID_TAG_STATE"

    def __init__(self, tag_id: Any, status: str, operation: str):
        self.tag_id = tag_id
        self.status = status
        super().__init__(
            f"Cannot {operation} a {status} tag",
            {"tag_id": str(tag_id), "status": status, "operation": operation},
        )


class IntegrityViolation(InventoryError):
    """Instance/tag/inventory state is inconsistent. Repair with reconciliation; never auto-corrected here."""

    code = "INTEGRITY_VIOLATION"
