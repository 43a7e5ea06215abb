from .exceptions import (
    DomainError,
    ValidationError,
    EmptyCart,
    Forbidden,
    NotFound,
    InvalidTransition,
    InsufficientStock,
    Conflict,
)
from .handlers import register_exception_handlers

__all__ = [
    "DomainError",
    "ValidationError",
    "EmptyCart",
    "Forbidden",
    "NotFound",
    "InvalidTransition",
    "InsufficientStock",
    "Conflict",
    "register_exception_handlers",
]
