"""Problem-details error models and helpers for HTTP error responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import (
    Any,
    Callable,
    Iterable,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

__all__ = [
    "ErrorDetailer",
    "ContentTypeFilter",
    "ErrorDetail",
    "ErrorModel",
    "HeadersError",
    "error_with_headers",
    "new_error",
    "set_error_factory",
    "write_err",
    "status_304_not_modified",
    "error_400_bad_request",
    "error_401_unauthorized",
    "error_403_forbidden",
    "error_404_not_found",
    "error_405_method_not_allowed",
    "error_406_not_acceptable",
    "error_409_conflict",
    "error_410_gone",
    "error_412_precondition_failed",
    "error_415_unsupported_media_type",
    "error_422_unprocessable_entity",
    "error_429_too_many_requests",
    "error_500_internal_server_error",
    "error_501_not_implemented",
    "error_502_bad_gateway",
    "error_503_service_unavailable",
    "error_504_gateway_timeout",
]


@runtime_checkable
class ErrorDetailer(Protocol):
    """Anything that can describe itself as an :class:`ErrorDetail`."""

    def error_detail(self) -> "ErrorDetail": ...


@runtime_checkable
class ContentTypeFilter(Protocol):
    """Adjusts the response content type chosen by negotiation."""

    def content_type(self, ct: str) -> str: ...


@dataclass(eq=False)
class ErrorDetail(Exception):
    """Details about one specific error: message, location and echoed value."""

    message: str = ""
    location: str = ""
    value: Any = None

    def __str__(self) -> str:
        if self.location == "" and self.value is None:
            return self.message
        return f"{self.message} ({self.location}: {_format_value(self.value)})"

    def error_detail(self) -> "ErrorDetail":
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, leaving out empty fields."""
        out: dict[str, Any] = {}
        if self.message:
            out["message"] = self.message
        if self.location:
            out["location"] = self.location
        if self.value is not None:
            out["value"] = self.value
        return out


def _format_value(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(eq=False)
class ErrorModel(Exception):
    """RFC 9457 problem details, with an optional list of error details."""

    type: str = ""
    title: str = ""
    status: int = 0
    detail: str = ""
    instance: str = ""
    errors: list[Optional[ErrorDetail]] = field(default_factory=list)

    def __str__(self) -> str:
        return self.detail

    def add(self, err: BaseException) -> None:
        """Append an error, using its own detail when it provides one."""
        if isinstance(err, ErrorDetailer):
            self.errors.append(err.error_detail())
        else:
            self.errors.append(ErrorDetail(message=str(err)))

    def content_type(self, ct: str) -> str:
        if ct == "application/json":
            return "application/problem+json"
        if ct == "application/cbor":
            return "application/problem+cbor"
        return ct

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, leaving out empty fields."""
        out: dict[str, Any] = {}
        for key in ("type", "title", "status", "detail", "instance"):
            value = getattr(self, key)
            if value:
                out[key] = value
        if self.errors:
            out["errors"] = [e.to_dict() if e is not None else None for e in self.errors]
        return out


def _canonical_header(key: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


HeaderValues = Union[str, Iterable[str]]


def _normalize_headers(headers: Mapping[str, HeaderValues]) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for key, values in headers.items():
        items = [values] if isinstance(values, str) else list(values)
        out.setdefault(_canonical_header(key), []).extend(items)
    return out


class HeadersError(Exception):
    """An error carrying extra HTTP headers to send with the response."""

    def __init__(self, err: BaseException, headers: Mapping[str, HeaderValues]):
        super().__init__(str(err))
        self.err = err
        self.headers = _normalize_headers(headers)
        self.__cause__ = err

    def __str__(self) -> str:
        return str(self.err)

    @property
    def status(self) -> Optional[int]:
        """Status of the wrapped error, if it has one."""
        return getattr(self.err, "status", None)


def _iter_chain(err: Optional[BaseException]) -> Iterable[BaseException]:
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__ if err.__cause__ is not None else err.__context__


def error_with_headers(
    err: BaseException, headers: Mapping[str, HeaderValues]
) -> BaseException:
    """Attach headers to an error, merging into any headers error already in its chain."""
    for link in _iter_chain(err):
        if isinstance(link, HeadersError):
            for key, values in _normalize_headers(headers).items():
                link.headers.setdefault(key, []).extend(values)
            return err
    return HeadersError(err, headers)


def _status_text(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def _default_factory(status: int, msg: str, *args: Optional[BaseException]) -> BaseException:
    details: list[Optional[ErrorDetail]] = []
    for err in args:
        if isinstance(err, ErrorDetailer):
            details.append(err.error_detail())
        elif err is None:
            details.append(None)
        else:
            details.append(ErrorDetail(message=str(err)))
    return ErrorModel(status=status, title=_status_text(status), detail=msg, errors=details)


ErrorFactory = Callable[..., BaseException]

_factory: ErrorFactory = _default_factory


def set_error_factory(factory: Optional[ErrorFactory]) -> ErrorFactory:
    """Replace the error factory used by :func:`new_error`; return the previous one.

    Passing ``None`` restores the default :class:`ErrorModel` factory.
    """
    global _factory
    previous = _factory
    _factory = factory if factory is not None else _default_factory
    return previous


def new_error(status: int, msg: str, *args: Optional[BaseException]) -> BaseException:
    """Create an error with the given status, message and optional details."""
    return _factory(status, msg, *args)


def write_err(api: Any, ctx: Any, status: int, msg: str, *args: Optional[BaseException]) -> None:
    """Write an error response using the API's content negotiation and formats."""
    err = new_error(status, msg, *args)
    ct = api.negotiate(ctx.header("Accept"))
    if isinstance(err, ContentTypeFilter):
        ct = err.content_type(ct)
    ctx.set_header("Content-Type", ct)
    ctx.set_status(status)
    value = api.transform(ctx, str(status), err)
    api.marshal(ctx.body_writer(), ct, value)


def status_304_not_modified() -> BaseException:
    """A 304 response; not really an error, but sent the same way."""
    return new_error(HTTPStatus.NOT_MODIFIED, "")


def error_400_bad_request(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.BAD_REQUEST, msg, *args)


def error_401_unauthorized(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.UNAUTHORIZED, msg, *args)


def error_403_forbidden(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.FORBIDDEN, msg, *args)


def error_404_not_found(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.NOT_FOUND, msg, *args)


def error_405_method_not_allowed(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.METHOD_NOT_ALLOWED, msg, *args)


def error_406_not_acceptable(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.NOT_ACCEPTABLE, msg, *args)


def error_409_conflict(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.CONFLICT, msg, *args)


def error_410_gone(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.GONE, msg, *args)


def error_412_precondition_failed(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.PRECONDITION_FAILED, msg, *args)


def error_415_unsupported_media_type(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.UNSUPPORTED_MEDIA_TYPE, msg, *args)


def error_422_unprocessable_entity(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.UNPROCESSABLE_ENTITY, msg, *args)


def error_429_too_many_requests(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.TOO_MANY_REQUESTS, msg, *args)


def error_500_internal_server_error(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.INTERNAL_SERVER_ERROR, msg, *args)


def error_501_not_implemented(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.NOT_IMPLEMENTED, msg, *args)


def error_502_bad_gateway(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.BAD_GATEWAY, msg, *args)


def error_503_service_unavailable(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.SERVICE_UNAVAILABLE, msg, *args)


def error_504_gateway_timeout(msg: str, *args: Optional[BaseException]) -> BaseException:
    return new_error(HTTPStatus.GATEWAY_TIMEOUT, msg, *args)