from .tenancy import Company
from .auth import User, SessionToken, ActionToken, Invitation, UserAuditLog
from .security import SecurityEvent
from .catalog import ProductCategory, Product
from .inventory import Warehouse, Batch, Inventory
from .orders import Order, OrderItem, OrderHistory
from .billing import Payment, Invoice, InvoiceItem
from .documents import OrderDocument, AnalyticsEvent, AuditLogEntry, CustomerActivity

__all__ = [
    'Company',
    'User', 'SessionToken', 'ActionToken', 'Invitation', 'UserAuditLog',
    'SecurityEvent',
    'ProductCategory', 'Product',
    'Warehouse', 'Batch', 'Inventory',
    'Order', 'OrderItem', 'OrderHistory',
    'Payment', 'Invoice', 'InvoiceItem',
    'OrderDocument', 'AnalyticsEvent', 'AuditLogEntry', 'CustomerActivity',
]
