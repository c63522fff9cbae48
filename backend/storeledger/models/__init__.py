from .auth import User, SessionToken
from .tenancy import Store
from .catalog import Category, Product
from .solds import SoldRecord
from .security import SecurityEvent

__all__ = [
    'User', 'SessionToken',
    'Store',
    'Category', 'Product',
    'SoldRecord',
    'SecurityEvent',
]
