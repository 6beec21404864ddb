from .catalog import Product
from .customers import Customer, WALK_IN_CUSTOMER_ID, WALK_IN_CUSTOMER_NAME
from .sales import Transaction, TransactionLine
from .documents import DocumentSequence

__all__ = [
    'Product',
    'Customer', 'WALK_IN_CUSTOMER_ID', 'WALK_IN_CUSTOMER_NAME',
    'Transaction', 'TransactionLine',
    'DocumentSequence',
]
