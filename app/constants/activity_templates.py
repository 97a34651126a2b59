from app.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- ACCOUNTS ----------------
    ActivityCode.CREATE_ACCOUNT:
        "{actor} created account {account_code} with credit limit ₹{credit_limit}",

    ActivityCode.UPDATE_CREDIT_LIMIT:
        "{actor} changed credit limit of {account_code} from ₹{old_value} to ₹{new_value}",

    # ---------------- SHIPMENTS ----------------
    ActivityCode.BOOK_SHIPMENT:
        "{actor} booked shipment {awb_no} for {account_code} (₹{total_amt})",

    ActivityCode.HOLD_SHIPMENT:
        "Shipment {awb_no} put on hold: {reason}",

    ActivityCode.RELEASE_HOLD:
        "{actor} released hold on shipment {awb_no}",

    ActivityCode.CORRECT_TOTAL:
        "{actor} corrected total of {awb_no} from ₹{old_value} to ₹{new_value}",

    ActivityCode.DATA_LOCK:
        "{actor} locked data of {count} shipment(s)",

    ActivityCode.DATA_UNLOCK:
        "{actor} unlocked data of {count} shipment(s)",

    ActivityCode.MARK_DELIVERED:
        "{actor} marked shipment {awb_no} delivered",

    # ---------------- CONSOLIDATION ----------------
    ActivityCode.CREATE_RUN:
        "{actor} created run {run_no}",

    ActivityCode.UPDATE_RUN_STATUS:
        "{actor} moved run {run_no} to {status}",

    ActivityCode.ASSIGN_TO_BAG:
        "{actor} bagged {awb_no} into bag {bag_no} of run {run_no}",

    ActivityCode.FINALIZE_BAG:
        "{actor} finalized bag {bag_no}",

    ActivityCode.ATTACH_TO_CLUB:
        "{actor} clubbed {awb_no} under {club_no}",

    ActivityCode.DETACH_FROM_CLUB:
        "{actor} removed {awb_no} from club {club_no}",

    ActivityCode.LOCK_CLUB:
        "{actor} locked club {club_no}",

    ActivityCode.DELETE_CLUB:
        "{actor} deleted club {club_no}",

    ActivityCode.CREATE_MANIFEST:
        "{actor} issued manifest {manifest_no} for run {run_no}",

    ActivityCode.OFFLOAD_SHIPMENT:
        "{actor} offloaded {awb_no} from run {run_no}: {reason}",

    # ---------------- BILLING ----------------
    ActivityCode.LOCK_FOR_BILLING:
        "{actor} billing-locked {count} shipment(s) of {account_code} ({from_date} to {to_date})",

    ActivityCode.CREATE_INVOICE:
        "{actor} created invoice {invoice_number} for {account_code} (₹{grand_total})",

    ActivityCode.CANCEL_INVOICE:
        "{actor} cancelled invoice {invoice_number}",

    ActivityCode.RECORD_RECEIPT:
        "{actor} recorded receipt {receipt_no} of ₹{amount} from {account_code}",

    ActivityCode.RECORD_ADJUSTMENT:
        "{actor} recorded {kind} adjustment of ₹{amount} for {account_code}",
}
