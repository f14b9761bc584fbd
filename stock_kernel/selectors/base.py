"""
Read side of the kernel.

Selectors only issue SELECTs and hand back frozen DTOs from
``stock_kernel.domain.dtos``.  Every public query takes ``organization_id``
and filters on it, so another organization's row reads as missing.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from stock_kernel.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseSelector(ABC, Generic[ModelT]):
    """Holds the caller's session; never adds, flushes or commits."""

    def __init__(self, session: Session):
        self.session = session
