"""
Triggers: describe how endpoints are exposed (e.g., HTTP routes).

    from bazaar.wire.triggers.http import HTTPRouteTrigger, user_route

    HTTPRouteTrigger("GET", "/api/products")
    user_route("POST", "/api/orders")     # requires X-User-Id
"""

from bazaar.wire.triggers import http

__all__ = ("http",)
