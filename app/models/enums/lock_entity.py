from enum import Enum


class LockEntity(str, Enum):
    bag = "bag"
    club = "club"
    shipment = "shipment"
