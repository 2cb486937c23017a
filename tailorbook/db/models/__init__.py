from .order import Order
from .setting import Setting

__all__ = [
    'Order',
    'Setting'
]
