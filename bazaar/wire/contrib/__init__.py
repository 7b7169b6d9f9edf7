"""
Contrib: integrations. Access them via submodules.

    from bazaar.wire.contrib import fastapi
    # app = fastapi.from_application(Application())
"""

from bazaar.wire.contrib import fastapi

__all__ = ("fastapi",)
