from __future__ import annotations
from typing import Optional


class BasketMarkovError(Exception):
    """Base class for errors raised by basketmarkov."""


class ConfigError(BasketMarkovError, ValueError):
    """Invalid startup configuration (catalog size, worker count, executor)."""


class MalformedInputError(BasketMarkovError, ValueError):
    """A user's order history cannot be modelled."""

    def __init__(self, message: str, user_id: Optional[int] = None):
        super().__init__(message)
        self.user_id = user_id
