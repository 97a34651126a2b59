from enum import Enum


class LedgerEntryType(str, Enum):
    opening = "opening"
    sale = "sale"
    correction = "correction"
    receipt = "receipt"
    debit = "debit"
    credit = "credit"
