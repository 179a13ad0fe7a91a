from .inventory import Category, Supplier, Item, Movement
from .auth import AppUser

__all__ = ["Category", "Supplier", "Item", "Movement", "AppUser"]
