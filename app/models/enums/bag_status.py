from enum import Enum


class BagStatus(str, Enum):
    open = "open"
    finalized = "finalized"
