from enum import Enum


class ShipmentStatus(str, Enum):
    unassigned = "unassigned"
    bagged = "bagged"
    manifested = "manifested"
    offloaded = "offloaded"
    delivered = "delivered"
