# app/routers/__init__.py

from .masters.customer_account_router import router as customer_account_router

from .operations.shipment_router import router as shipment_router
from .operations.run_router import router as run_router
from .operations.bag_router import router as bag_router
from .operations.club_router import router as club_router
from .operations.offload_router import router as offload_router

from .billing.billing_router import router as billing_router
from .billing.ledger_router import router as ledger_router

from .support.activity_router import router as activity_router


__all__ = [
"customer_account_router",

"shipment_router",
"run_router",
"bag_router",
"club_router",
"offload_router",

"billing_router",
"ledger_router",

"activity_router",
]
