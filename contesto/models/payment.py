"""
Payment Models
Local records created from a completed checkout session
"""
from enum import Enum


class PaymentStatus(str, Enum):
    """Payment status as recorded locally"""
    PAID = "paid"
