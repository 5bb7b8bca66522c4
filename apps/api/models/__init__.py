"""Models package."""

from .user import User
from .admin import Admin
from .category import Category
from .video import Video
from .product import Product
from .order import Order
from .contact import Contact
