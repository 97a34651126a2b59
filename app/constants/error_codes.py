from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # ---------------- ACCOUNTS ----------------
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    ACCOUNT_CODE_EXISTS = "ACCOUNT_CODE_EXISTS"

    # ---------------- SHIPMENTS ----------------
    SHIPMENT_NOT_FOUND = "SHIPMENT_NOT_FOUND"
    SHIPMENT_EXISTS = "SHIPMENT_EXISTS"
    SHIPMENT_LOCKED = "SHIPMENT_LOCKED"
    SHIPMENT_ON_HOLD = "SHIPMENT_ON_HOLD"
    SHIPMENT_NOT_BAGGED = "SHIPMENT_NOT_BAGGED"
    SHIPMENT_INVALID_STATE = "SHIPMENT_INVALID_STATE"

    # ---------------- RUNS / BAGS ----------------
    RUN_NOT_FOUND = "RUN_NOT_FOUND"
    RUN_EXISTS = "RUN_EXISTS"
    RUN_INVALID_STATUS = "RUN_INVALID_STATUS"
    BAG_NOT_FOUND = "BAG_NOT_FOUND"
    BAG_ALREADY_FINALIZED = "BAG_ALREADY_FINALIZED"
    BAG_EMPTY = "BAG_EMPTY"
    BAG_RUN_MISMATCH = "BAG_RUN_MISMATCH"
    BAGS_NOT_FINALIZED = "BAGS_NOT_FINALIZED"

    # ---------------- CLUBS ----------------
    CLUB_NOT_FOUND = "CLUB_NOT_FOUND"
    CLUB_LOCKED = "CLUB_LOCKED"
    ALREADY_CLUBBED = "ALREADY_CLUBBED"
    NOT_CLUBBABLE = "NOT_CLUBBABLE"
    CLUB_EMPTY = "CLUB_EMPTY"

    # ---------------- MANIFEST ----------------
    MANIFEST_NOT_FOUND = "MANIFEST_NOT_FOUND"

    # ---------------- BILLING ----------------
    INVOICE_NOT_FOUND = "INVOICE_NOT_FOUND"
    ALREADY_BILLED = "ALREADY_BILLED"
    NOT_BILLABLE = "NOT_BILLABLE"
    BILLING_CONFLICT = "BILLING_CONFLICT"
    SEQUENCE_INVALID = "SEQUENCE_INVALID"
