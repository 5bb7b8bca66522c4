"""Routers package."""

from . import (
    health,
    auth,
    admin,
    categories,
    videos,
    products,
    orders,
    contact,
)
