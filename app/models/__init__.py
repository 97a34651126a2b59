# Masters
from app.models.masters.customer_account_models import CustomerAccount

# Operations
from app.models.operations.shipment_models import Shipment
from app.models.operations.run_models import Run, RunStatusEntry
from app.models.operations.bag_models import Bag, BagRow
from app.models.operations.club_models import Club, ClubRow
from app.models.operations.manifest_models import Manifest
from app.models.operations.offload_models import OffloadRecord
from app.models.operations.hold_log_models import HoldLog
from app.models.operations.lock_transition_models import LockTransition

# Billing
from app.models.billing.invoice_models import Invoice, InvoiceLine
from app.models.billing.sequence_models import SequenceCounter
from app.models.billing.ledger_models import AccountLedger

# Support
from app.models.support.activity_models import ActivityLog
