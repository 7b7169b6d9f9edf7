"""
Codecs: convert transport payloads to domain ops and back.

    from bazaar.wire.codecs import RequestResponseCodec, RawBodyCodec

    # class Request(BaseModel): implements to_domain()
    # class Response(BaseModel): implements from_domain()
    # codec = RequestResponseCodec(Request, Response)

    # class Webhook: implements from_raw(body, headers)
    # codec = RawBodyCodec(Webhook, Response)
"""

from bazaar.wire.codecs.raw import FromRaw, RawBodyCodec
from bazaar.wire.codecs.rrc import FromDomain, RequestResponseCodec, ToDomain

__all__ = (
    "RequestResponseCodec",
    "RawBodyCodec",
    "ToDomain",
    "FromDomain",
    "FromRaw",
)
