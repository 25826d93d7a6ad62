"""
Pydantic schemas for validating external data before it reaches the engine.
"""
from .item_bank import ItemBankRow

__all__ = ["ItemBankRow"]
