from enum import Enum


class ClubStatus(str, Enum):
    open = "open"
    locked = "locked"
