"""TagTrack IMS — AuditService: emits audit events on the `tagtrack.audit` logger."""
import logging
from uuid import UUID

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("tagtrack.audit")

# ── Audit action constants ────────────────────────────────────────────────────
ACTION_CATEGORY_CREATED = "category.created"
ACTION_SKU_CREATED = "sku.created"
ACTION_SKU_COST_UPDATED = "sku.cost_updated"
ACTION_SKU_ARCHIVED = "sku.archived"
ACTION_STOCK_RECEIVED = "stock.received"
ACTION_STOCK_ADJUSTED = "stock.adjusted"
ACTION_TAG_CREATED = "tag.created"
ACTION_TAG_ALLOCATED = "tag.allocated"
ACTION_TAG_FULFILLED = "tag.fulfilled"
ACTION_TAG_CANCELLED = "tag.cancelled"
ACTION_TOOLS_RETURNED = "tools.returned"
ACTION_INVENTORY_RECONCILED = "inventory.reconciled"


def log_audit(
    actor: str,
    action: str,
    target_type: str | None = None,
    target_id: UUID | None = None,
    payload: dict | None = None,
) -> None:
    """
    Emit an audit event. Storage belongs to whatever handler is attached to
    `tagtrack.audit`; call this from services after the main action.
    """
    try:
        audit_logger.info(
            "%s by %s on %s %s",
            action,
            actor,
            target_type or "-",
            target_id or "-",
            extra={
                "audit_action": action,
                "audit_actor": actor,
                "audit_target_type": target_type,
                "audit_target_id": str(target_id) if target_id else None,
                "audit_payload": payload or {},
            },
        )
    except Exception as exc:
        # Never allow audit failure to break the main request
        logger.error("Audit event emit failed: %s", exc, exc_info=True)
