"""
FastAPI integration for bazaar.wire.

    from bazaar.wire.contrib import fastapi
    # fapp = fastapi.from_application(app)
"""

from bazaar.wire.contrib._fastapi import (
    STATUS_BY_KIND,
    add_endpoint_to_app,
    compile_to_fastapi_route,
    error_response,
    from_application,
    install_error_handlers,
    routes,
)

__all__ = (
    "add_endpoint_to_app",
    "from_application",
    "compile_to_fastapi_route",
    "error_response",
    "install_error_handlers",
    "routes",
    "STATUS_BY_KIND",
)
