from enum import Enum


class ActivityCode(str, Enum):
    # ---------------- ACCOUNTS ----------------
    CREATE_ACCOUNT = "CREATE_ACCOUNT"
    UPDATE_CREDIT_LIMIT = "UPDATE_CREDIT_LIMIT"

    # ---------------- SHIPMENTS ----------------
    BOOK_SHIPMENT = "BOOK_SHIPMENT"
    HOLD_SHIPMENT = "HOLD_SHIPMENT"
    RELEASE_HOLD = "RELEASE_HOLD"
    CORRECT_TOTAL = "CORRECT_TOTAL"
    DATA_LOCK = "DATA_LOCK"
    DATA_UNLOCK = "DATA_UNLOCK"
    MARK_DELIVERED = "MARK_DELIVERED"

    # ---------------- CONSOLIDATION ----------------
    CREATE_RUN = "CREATE_RUN"
    UPDATE_RUN_STATUS = "UPDATE_RUN_STATUS"
    ASSIGN_TO_BAG = "ASSIGN_TO_BAG"
    FINALIZE_BAG = "FINALIZE_BAG"
    ATTACH_TO_CLUB = "ATTACH_TO_CLUB"
    DETACH_FROM_CLUB = "DETACH_FROM_CLUB"
    LOCK_CLUB = "LOCK_CLUB"
    DELETE_CLUB = "DELETE_CLUB"
    CREATE_MANIFEST = "CREATE_MANIFEST"
    OFFLOAD_SHIPMENT = "OFFLOAD_SHIPMENT"

    # ---------------- BILLING ----------------
    LOCK_FOR_BILLING = "LOCK_FOR_BILLING"
    CREATE_INVOICE = "CREATE_INVOICE"
    CANCEL_INVOICE = "CANCEL_INVOICE"
    RECORD_RECEIPT = "RECORD_RECEIPT"
    RECORD_ADJUSTMENT = "RECORD_ADJUSTMENT"
