from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, replace
from typing import Self

from bazaar.ops import Runner
from bazaar.wire._types import Codec, Exposure, Trigger


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A runner plus the (trigger, codec) pairs it answers on."""

    runner: Runner
    exposures: tuple[Exposure, ...] = ()

    @classmethod
    def from_runner(cls, runner: Runner) -> Endpoint:
        return cls(runner=runner)

    def expose(self, trigger: Trigger, codec: Codec) -> Endpoint:
        return replace(self, exposures=(*self.exposures, (trigger, codec)))


def endpoint(runner: Runner) -> Endpoint:
    return Endpoint.from_runner(runner)


class Application:
    def __init__(self) -> None:
        self.endpoints: list[Endpoint] = []

    def mount(self, *endps: Endpoint) -> Self:
        self.endpoints.extend(endps)
        return self

    def exposures(self) -> Iterator[tuple[Runner, Trigger, Codec]]:
        for endp in self.endpoints:
            for trigger, codec in endp.exposures:
                yield endp.runner, trigger, codec


def application() -> Application:
    return Application()


__all__ = ("Endpoint", "endpoint", "Application", "application")
