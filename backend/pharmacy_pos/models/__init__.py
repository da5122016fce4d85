from .inventory import Product, InventoryBatch
from .sales import Sale, SaleItem, Payment, InvoiceSequence, PAYMENT_METHODS
from .ledger import Expense

__all__ = [
    'Product', 'InventoryBatch',
    'Sale', 'SaleItem', 'Payment', 'InvoiceSequence', 'PAYMENT_METHODS',
    'Expense',
]
