from enum import Enum

class InvoiceStatus(str, Enum):
    issued = "issued"
    cancelled = "cancelled"
