"""
Domain Layer - Business Entities

Pydantic models for the loyalty platform's entities, plus the pure rules
that belong to them (tier progress, reward availability, store hours,
booking status transitions).
"""
from loyalty_api.domain.booking import Appointment, WorkOrder
from loyalty_api.domain.chat import ChatMessage, ChatSession, ChatSettings
from loyalty_api.domain.customer import Customer, User
from loyalty_api.domain.loyalty import Reward, TierInfo, Voucher
from loyalty_api.domain.product import Product
from loyalty_api.domain.settings import SystemSetting
from loyalty_api.domain.store import Store, StoreService
from loyalty_api.domain.transaction import Transaction, TransactionItem
from loyalty_api.domain.wishlist import Wishlist, WishlistItem

__all__ = [
    'Appointment', 'WorkOrder',
    'ChatMessage', 'ChatSession', 'ChatSettings',
    'Customer', 'User',
    'Reward', 'TierInfo', 'Voucher',
    'Product',
    'SystemSetting',
    'Store', 'StoreService',
    'Transaction', 'TransactionItem',
    'Wishlist', 'WishlistItem',
]
