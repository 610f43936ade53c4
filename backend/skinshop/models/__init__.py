from .accounts import Account, SessionToken
from .catalog import Category, Brand, Skin, Product
from .promotions import Promotion
from .orders import Order, OrderItem, OrderRefund
from .feedback import Feedback
from .routines import Routine, RoutineStep

__all__ = [
    'Account', 'SessionToken',
    'Category', 'Brand', 'Skin', 'Product',
    'Promotion',
    'Order', 'OrderItem', 'OrderRefund',
    'Feedback',
    'Routine', 'RoutineStep',
]
