from enum import Enum


class OffloadType(str, Enum):
    awb = "awb"
    run = "run"
