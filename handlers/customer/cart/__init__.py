"""Cart module for shoppers.

Provides cart functionality:
- Add items to cart
- Update quantities
- Remove items
- View cart
- Checkout flow
"""
from .router import router, setup_dependencies, show_cart

__all__ = ["router", "setup_dependencies", "show_cart"]
