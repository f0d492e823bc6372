"""TagTrack IMS — Seed dev categories, SKUs and stock (run after migrations)."""
import asyncio
import os
import sys
from decimal import Decimal

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tagtrack.core.logging import setup_logging
from tagtrack.config import get_settings
from tagtrack.db.session import async_session_maker, engine
from tagtrack.models.category import CategoryType
from tagtrack.services.category_service import CategoryService
from tagtrack.services.instance_service import InstanceService
from tagtrack.services.sku_service import SKUService

ACTOR = "seed"


async def seed():
    setup_logging(get_settings())
    async with async_session_maker() as session:
        if await CategoryService.get_by_name(session, "cables"):
            print("Dev catalog already exists. Skipping seed.")
            return

        cables = await CategoryService.create_category(session, "cables", CategoryType.PRODUCT, actor=ACTOR)
        drills = await CategoryService.create_category(session, "power tools", CategoryType.TOOL, actor=ACTOR)

        hdmi = await SKUService.create_sku(session, "CBL-HDMI-2M", "HDMI cable 2m", cables.id, unit_cost=Decimal("4.50"), actor=ACTOR)
        usb = await SKUService.create_sku(session, "CBL-USBC-1M", "USB-C cable 1m", cables.id, unit_cost=Decimal("3.20"), actor=ACTOR)
        kit = await SKUService.create_sku(
            session,
            "KIT-AV-BASIC",
            "Basic AV kit",
            cables.id,
            is_bundle=True,
            bundle_items=[{"sku_id": hdmi.id, "quantity": 2}, {"sku_id": usb.id, "quantity": 1}],
            actor=ACTOR,
        )
        drill = await SKUService.create_sku(session, "TL-DRILL-18V", "18V cordless drill", drills.id, unit_cost=Decimal("129.00"), actor=ACTOR)

        await InstanceService.receive_stock(session, hdmi.id, 20, supplier="Acme Cables", reference_number="PO-1001", actor=ACTOR)
        await InstanceService.receive_stock(session, kit.id, 5, reference_number="PO-1002", actor=ACTOR)
        await InstanceService.receive_stock(session, drill.id, 4, supplier="ToolCo", actor=ACTOR)

        await session.commit()
        print("Seeded 2 categories, 4 SKUs and opening stock")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
