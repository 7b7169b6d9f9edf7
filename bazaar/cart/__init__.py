"""
Cart: one per user, lines keyed by (product, variant label).

    carts = CartService(sessions)
    cart = await carts.add(user_id, "prd_1", "500g")
    cart = await carts.update(user_id, "prd_1", "500g", quantity=0)   # removes
    cart.total_amount, cart.item_count, cart.distinct_item_count
"""

from bazaar.cart._service import Cart, CartLine, CartService, clear_cart

__all__ = ("CartLine", "Cart", "CartService", "clear_cart")
