"""
Models package initialization
"""

from .account import Account
from .course import Course, CourseType
from .transaction import Transaction, TransactionType

__all__ = [
    "Account",
    "Course",
    "CourseType",
    "Transaction",
    "TransactionType",
]
