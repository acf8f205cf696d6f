"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from the API routes.
"""
from loyalty_api.repositories.booking_repository import AppointmentRepository, WorkOrderRepository
from loyalty_api.repositories.chat_repository import ChatRepository
from loyalty_api.repositories.customer_repository import CustomerRepository
from loyalty_api.repositories.loyalty_repository import LoyaltyRepository
from loyalty_api.repositories.product_repository import ProductRepository
from loyalty_api.repositories.settings_repository import SettingsRepository
from loyalty_api.repositories.store_repository import StoreRepository
from loyalty_api.repositories.transaction_repository import TransactionRepository
from loyalty_api.repositories.user_repository import ActivityRepository, SessionRepository, UserRepository
from loyalty_api.repositories.wishlist_repository import WishlistRepository

__all__ = [
    'AppointmentRepository',
    'WorkOrderRepository',
    'ChatRepository',
    'CustomerRepository',
    'LoyaltyRepository',
    'ProductRepository',
    'SettingsRepository',
    'StoreRepository',
    'TransactionRepository',
    'ActivityRepository',
    'SessionRepository',
    'UserRepository',
    'WishlistRepository',
]
