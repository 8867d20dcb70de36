from .tenancy import Store, StoreMembership
from .auth import User, SessionToken
from .ledger import Customer, Item, UtangRecord, UtangLineItem, Payment

__all__ = [
    'Store', 'StoreMembership',
    'User', 'SessionToken',
    'Customer', 'Item', 'UtangRecord', 'UtangLineItem', 'Payment',
]
