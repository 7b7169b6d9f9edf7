import json
import logging
from typing import Any, TypeGuard, cast

import fastapi
import pydantic
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from kungfu import Error, Ok

from bazaar.errors import ErrorKind, ShopError, Unauthenticated, ValidationError
from bazaar.ops import Op, Runner
from bazaar.wire._endpoint import Application, Endpoint
from bazaar.wire._types import Codec, Exposure
from bazaar.wire.codecs.raw import RawBodyCodec
from bazaar.wire.codecs.rrc import RequestResponseCodec
from bazaar.wire.triggers.http import USER_HEADER, HTTPRouteTrigger, Path, header_field

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.COUPON_NOT_APPLICABLE: 400,
    ErrorKind.INVALID_SIGNATURE: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INSUFFICIENT_STOCK: 409,
    ErrorKind.EXTERNAL_SERVICE: 502,
    ErrorKind.ORDER_CODE_EXHAUSTED: 503,
}

_QUERY_METHODS = frozenset({"GET", "DELETE"})


def is_target(tc: Exposure) -> TypeGuard[tuple[HTTPRouteTrigger, Codec]]:
    return isinstance(tc[0], HTTPRouteTrigger) and isinstance(
        tc[1], (RequestResponseCodec, RawBodyCodec)
    )


def _describe(exc: pydantic.ValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first['msg']}" if loc else first["msg"]


async def _json_payload(request: fastapi.Request, trigger: HTTPRouteTrigger) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if trigger.method in _QUERY_METHODS:
        data.update(request.query_params)
    else:
        body = await request.body()
        if body:
            try:
                parsed = json.loads(body)
            except ValueError as exc:
                raise ValidationError("Malformed JSON body") from exc
            if not isinstance(parsed, dict):
                raise ValidationError("JSON body must be an object")
            data.update(parsed)

    data.update(request.path_params)

    for header in trigger.headers:
        value = request.headers.get(header)
        if not value:
            if header == USER_HEADER:
                raise Unauthenticated()
            raise ValidationError(f"{header} header is required")
        data[header_field(header)] = value
    return data


async def _decode(request: fastapi.Request, trigger: HTTPRouteTrigger, codec: Codec) -> Op[Any, Any]:
    if isinstance(codec, RawBodyCodec):
        body = await request.body()
        headers = {header: request.headers.get(header) for header in trigger.headers}
        return codec.request.from_raw(body, headers)  # type: ignore[no-any-return]

    payload = await _json_payload(request, trigger)
    try:
        req = codec.request.model_validate(payload)  # type: ignore[attr-defined]
    except pydantic.ValidationError as exc:
        raise ValidationError(_describe(exc)) from exc
    return req.to_domain()  # type: ignore[no-any-return]


def make_handler(runner: Runner, trigger: HTTPRouteTrigger, codec: Codec) -> Any:
    async def _route_handler(request: fastapi.Request) -> JSONResponse:
        domain_op = await _decode(request, trigger, codec)
        match await runner.run(domain_op):
            case Ok(value):
                response = codec.response.from_domain(value)
                return JSONResponse(
                    status_code=trigger.status_code,
                    content=response.model_dump(mode="json", by_alias=True),
                )
            case Error(err):
                return error_response(err)
            case other:
                raise TypeError(f"handler for {type(domain_op).__name__} returned {other!r}")

    _route_handler.__name__ = f"{trigger.method.lower()}_{trigger.path.strip('/').replace('/', '_')}"
    return _route_handler


def compile_to_fastapi_route(
    endp: Endpoint,
) -> list[tuple[HTTPRouteTrigger, Any]]:
    compiled: list[tuple[HTTPRouteTrigger, Any]] = []

    for exposure in endp.exposures:
        if not is_target(exposure):
            continue
        trigger, codec = exposure
        compiled.append((trigger, make_handler(endp.runner, trigger, codec)))

    return compiled


def add_endpoint_to_app(
    app: fastapi.FastAPI,
    endp: Endpoint,
) -> None:
    for trigger, handler in compile_to_fastapi_route(endp):
        app.add_api_route(
            trigger.path,
            handler,
            methods=[trigger.method.upper()],
            status_code=trigger.status_code,
            response_model=None,
        )


def _error_body(message: str) -> dict[str, Any]:
    return {"success": False, "message": message}


def error_response(err: ShopError) -> JSONResponse:
    status = STATUS_BY_KIND.get(err.kind, 400)
    if status >= 500:
        logger.warning("%s: %s", type(err).__name__, err.message)
    return JSONResponse(status_code=status, content=_error_body(err.message))


async def _shop_error(_: fastapi.Request, exc: Exception) -> JSONResponse:
    # Registered for ShopError only.
    return error_response(cast(ShopError, exc))


async def _request_validation_error(_: fastapi.Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body("Invalid request"))


async def _unexpected_error(request: fastapi.Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=_error_body("Internal server error"))


def install_error_handlers(app: fastapi.FastAPI) -> None:
    app.add_exception_handler(ShopError, _shop_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _unexpected_error)


def from_application(app: Application, **fastapi_kwargs: Any) -> fastapi.FastAPI:
    f_app = fastapi.FastAPI(**fastapi_kwargs)

    for endp in app.endpoints:
        add_endpoint_to_app(f_app, endp)

    install_error_handlers(f_app)
    return f_app


def routes(app: Application) -> list[tuple[str, Path]]:
    """(method, path) of every HTTP exposure in the application."""
    return [
        (trigger.method, trigger.path)
        for _, trigger, codec in app.exposures()
        if is_target((trigger, codec))
    ]


__all__ = (
    "compile_to_fastapi_route",
    "add_endpoint_to_app",
    "install_error_handlers",
    "error_response",
    "from_application",
    "routes",
    "STATUS_BY_KIND",
)
