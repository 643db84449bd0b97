"""Database models for the marketplace application."""

from .user import User
from .task import Task, TaskStatus, PaymentStatus, CanceledBy, Assignment, EscrowSplit
from .offer import Offer, OfferStatus
from .chat import ChatThread, ChatMessage

__all__ = [
    'User',
    'Task',
    'TaskStatus',
    'PaymentStatus',
    'CanceledBy',
    'Assignment',
    'EscrowSplit',
    'Offer',
    'OfferStatus',
    'ChatThread',
    'ChatMessage',
]
