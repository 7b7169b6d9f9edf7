from typing import Any, TypeAlias

from bazaar.wire.codecs.raw import RawBodyCodec
from bazaar.wire.codecs.rrc import RequestResponseCodec
from bazaar.wire.triggers.http import HTTPRouteTrigger

# Compilers skip pairs they do not understand.
Trigger: TypeAlias = HTTPRouteTrigger | Any
Codec: TypeAlias = RequestResponseCodec | RawBodyCodec | Any
Exposure: TypeAlias = tuple[Trigger, Codec]
