from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from bazaar.ops import Op
from bazaar.wire.codecs.rrc import FromDomain

T_co = TypeVar("T_co", covariant=True)
E_co = TypeVar("E_co", covariant=True)
DomainT_co = TypeVar("DomainT_co", covariant=True)


class FromRaw(Protocol[DomainT_co]):
    @classmethod
    def from_raw(cls, body: bytes, headers: Mapping[str, str | None]) -> DomainT_co: ...


@dataclass(frozen=True, slots=True)
class RawBodyCodec:
    """
    Untouched request bytes in, JSON out.

    For payloads that must be seen exactly as sent, such as signed webhooks.
    """

    request: type[FromRaw[Any]]
    response: type[FromDomain[Any]]

    if TYPE_CHECKING:

        def __init__(
            self,
            request: type[FromRaw[Op[T_co, E_co]]],
            response: type[FromDomain[T_co]],
        ) -> None: ...
