"""
Wire: expose ops via triggers and codecs.

    from bazaar.wire import endpoint, Application, HTTPRouteTrigger, RequestResponseCodec

    # runner = ops().on(GetCart, get_cart).compile()
    # endp = endpoint(runner).expose(
    #     user_route("GET", "/api/cart"),
    #     RequestResponseCodec(GetCartRequest, CartResponse),
    # )
    # app = Application().mount(endp)
"""

from bazaar.wire._endpoint import Application, Endpoint, application, endpoint
from bazaar.wire._types import Codec, Exposure, Trigger

from bazaar.wire.codecs import FromDomain, FromRaw, RawBodyCodec, RequestResponseCodec, ToDomain
from bazaar.wire.triggers.http import (
    USER_HEADER,
    Header,
    Headers,
    HTTPRouteTrigger,
    Method,
    Path,
    user_route,
)

from bazaar.wire import codecs, contrib, triggers

__all__ = (
    # Core API
    "Endpoint",
    "endpoint",
    "Application",
    "application",
    "Trigger",
    "Codec",
    "Exposure",
    # Built-ins
    "RequestResponseCodec",
    "RawBodyCodec",
    "ToDomain",
    "FromDomain",
    "FromRaw",
    "HTTPRouteTrigger",
    "user_route",
    "USER_HEADER",
    "Method",
    "Path",
    "Header",
    "Headers",
    # Subpackages
    "codecs",
    "triggers",
    "contrib",
)
