from .catalog import Item
from .membership import Organization, Membership
from .pins import Pin, PinItem
from .notifications import Notification

__all__ = [
    'Item',
    'Organization', 'Membership',
    'Pin', 'PinItem',
    'Notification',
]
