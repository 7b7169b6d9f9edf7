"""
Ops: typed request → handler dispatch with dependency injection.

Core idea:
- Op[T, E] is the base class for request dataclasses (T = value, E = error)
- Handlers are plain async functions returning Result[T, E]; their
  parameters are resolved by type annotation at compile time
- The parameter typed as the Op receives the request, every other
  parameter is looked up among injected dependencies

Example:
    @dataclass(frozen=True, slots=True)
    class GetCart(Op[Cart, ShopError]):
        user_id: str

    async def get_cart(req: GetCart, carts: CartService) -> Result[Cart, ShopError]:
        return await catching(carts.get(req.user_id), ShopError)

    runner = ops().on(GetCart, get_cart).compile().inject(CartService, carts)
    match await runner.run(GetCart("u1")):
        case Ok(cart): ...
        case Error(err): ...

Services raise inside their transactions; ``catching`` turns the raise into
an Error at the handler boundary. A missing registration or dependency is a
wiring bug and raises LookupError.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, cast, get_type_hints

from kungfu import Error, Ok, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E")
T_co = TypeVar("T_co", covariant=True)
E_co = TypeVar("E_co", covariant=True)
ExcT = TypeVar("ExcT", bound=Exception)

HandlerFunc = Callable[..., Awaitable[Result[Any, Any]]]


class Op(ABC, Generic[T_co, E_co]):
    """Base class for operations. Subclass as a frozen dataclass."""


async def catching(call: Awaitable[T], exc_type: type[ExcT]) -> Result[T, ExcT]:
    """Await ``call``; an ``exc_type`` raise becomes Error, anything else propagates."""
    try:
        return Ok(await call)
    except exc_type as exc:
        return Error(exc)


@dataclass(frozen=True, slots=True)
class _OpReg:
    """Registration: Op type → handler + resolved parameter plan."""

    op_type: type[Op[Any, Any]]
    handler: HandlerFunc
    params: tuple[tuple[str, Any], ...]


def _plan(op_type: type[Op[Any, Any]], handler: HandlerFunc) -> tuple[tuple[str, Any], ...]:
    """Resolve handler parameters to their annotated types once, at compile time."""
    hints = get_type_hints(handler)
    plan: list[tuple[str, Any]] = []
    for pname in inspect.signature(handler).parameters:
        ptype = hints.get(pname)
        if ptype is None:
            raise TypeError(f"{handler.__qualname__}: parameter {pname!r} needs a type annotation")
        plan.append((pname, ptype))
    if not any(ptype is op_type for _, ptype in plan):
        raise TypeError(f"{handler.__qualname__} does not accept {op_type.__name__}")
    return tuple(plan)


@dataclass(slots=True, frozen=True)
class OpsBuilder:
    """Builder for operation handlers."""

    _items: tuple[tuple[type[Op[Any, Any]], HandlerFunc], ...] = ()

    def on(self, op_type: type[Op[Any, Any]], handler: HandlerFunc) -> OpsBuilder:
        """Register handler for operation type. Last registration wins."""
        others = tuple(i for i in self._items if i[0] is not op_type)
        return OpsBuilder(_items=(*others, (op_type, handler)))

    def compile(self) -> Runner:
        registrations = {
            op_type: _OpReg(op_type=op_type, handler=handler, params=_plan(op_type, handler))
            for op_type, handler in self._items
        }
        return Runner(_registry=registrations)


@dataclass(slots=True)
class Runner:
    """Executes operations, filling handler parameters from the injected scope."""

    _registry: dict[type[Op[Any, Any]], _OpReg]
    _scope: dict[Any, object] = field(default_factory=dict)

    def inject(self, typ: Any, impl: object) -> Runner:
        """Inject shared dependency."""
        self._scope[typ] = impl
        return self

    @property
    def registered(self) -> tuple[type[Op[Any, Any]], ...]:
        return tuple(self._registry)

    async def run(self, req: Op[T, E]) -> Result[T, E]:
        op_type = type(req)
        reg = self._registry.get(op_type)
        if reg is None:
            raise LookupError(f"Op not registered: {op_type.__name__}")

        kwargs: dict[str, object] = {}
        for pname, ptype in reg.params:
            if ptype is op_type:
                kwargs[pname] = req
            elif ptype in self._scope:
                kwargs[pname] = self._scope[ptype]
            else:
                name = getattr(ptype, "__name__", repr(ptype))
                raise LookupError(f"{name} not injected (needed by {op_type.__name__})")

        logger.debug("Running %s", op_type.__name__)
        return cast("Result[T, E]", await reg.handler(**kwargs))


def ops() -> OpsBuilder:
    """Create ops builder: ops().on(...).compile()"""
    return OpsBuilder()


__all__ = ("Op", "OpsBuilder", "Runner", "ops", "catching")
