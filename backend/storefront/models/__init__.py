from .accounts import User, StaffRecord
from .customers import Customer
from .catalog import Product
from .orders import Order, OrderItem, TrackingEvent
from .payments import Payment
from .cashflow import CashflowEntry, PendingCashflowPosting

__all__ = [
    'User', 'StaffRecord',
    'Customer',
    'Product',
    'Order', 'OrderItem', 'TrackingEvent',
    'Payment',
    'CashflowEntry', 'PendingCashflowPosting',
]
