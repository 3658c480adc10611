import io

import pytest

from humakit import errors as he
from humakit.errors import ErrorDetail, ErrorModel, HeadersError


def test_error_model_add_and_messages():
    err = ErrorModel(status=400, detail="test err")
    err.add(ErrorDetail(message="test detail", location="body.foo", value="bar"))
    err.add(ValueError("plain error"))

    assert str(err) == "test err"
    assert len(err.errors) == 2
    assert str(err.errors[0]) == "test detail (body.foo: bar)"
    assert str(err.errors[1]) == "plain error"


def test_problem_content_types():
    err = ErrorModel(status=400, detail="x")
    assert err.content_type("application/json") == "application/problem+json"
    assert err.content_type("application/cbor") == "application/problem+cbor"
    assert err.content_type("other") == "other"


def test_error_detail_plain_message():
    detail = ErrorDetail(message="just this")
    assert str(detail) == "just this"
    assert detail.error_detail() is detail


def test_status_304():
    assert he.status_304_not_modified().status == 304


@pytest.mark.parametrize(
    "constructor, expected",
    [
        (he.error_400_bad_request, 400),
        (he.error_401_unauthorized, 401),
        (he.error_403_forbidden, 403),
        (he.error_404_not_found, 404),
        (he.error_405_method_not_allowed, 405),
        (he.error_406_not_acceptable, 406),
        (he.error_409_conflict, 409),
        (he.error_410_gone, 410),
        (he.error_412_precondition_failed, 412),
        (he.error_415_unsupported_media_type, 415),
        (he.error_422_unprocessable_entity, 422),
        (he.error_429_too_many_requests, 429),
        (he.error_500_internal_server_error, 500),
        (he.error_501_not_implemented, 501),
        (he.error_502_bad_gateway, 502),
        (he.error_503_service_unavailable, 503),
        (he.error_504_gateway_timeout, 504),
    ],
)
def test_error_responses(constructor, expected):
    err = constructor("test")
    assert err.status == expected
    assert str(err) == "test"


def test_new_error_details_and_title():
    err = he.new_error(
        422,
        "validation failed",
        ErrorDetail(message="bad", location="body.count", value=30),
        RuntimeError("other"),
        None,
    )
    assert err.title == "Unprocessable Entity"
    assert err.errors[0].location == "body.count"
    assert err.errors[1].message == "other"
    assert err.errors[2] is None
    assert err.to_dict() == {
        "title": "Unprocessable Entity",
        "status": 422,
        "detail": "validation failed",
        "errors": [
            {"message": "bad", "location": "body.count", "value": 30},
            {"message": "other"},
            None,
        ],
    }


def test_custom_error_factory():
    class MyError(Exception):
        def __init__(self, status, message, details):
            super().__init__(message)
            self.status = status
            self.details = details

    def factory(status, msg, *args):
        return MyError(status, msg, [str(e) for e in args])

    previous = he.set_error_factory(factory)
    try:
        err = he.error_404_not_found("not found", RuntimeError("some-other-error"))
        assert isinstance(err, MyError)
        assert err.status == 404
        assert err.details == ["some-other-error"]
    finally:
        he.set_error_factory(previous)
    assert isinstance(he.error_404_not_found("x"), ErrorModel)


def test_error_as_through_cause_chain():
    err = he.error_400_bad_request("test")
    with pytest.raises(RuntimeError) as info:
        try:
            raise err
        except ErrorModel as inner:
            raise RuntimeError("wrapped") from inner
    assert info.value.__cause__ is err
    assert err.status == 400
    assert err.title == "Bad Request"
    assert str(err) == "test"


def test_error_with_headers_merges():
    err = he.error_with_headers(he.error_400_bad_request("test"), {"My-Header": ["bar"]})
    assert str(err) == "test"
    assert isinstance(err, HeadersError)
    assert err.status == 400

    same = he.error_with_headers(err, {"another": "bar"})
    assert same is err
    assert err.headers == {"My-Header": ["bar"], "Another": ["bar"]}


def test_error_with_headers_finds_wrapped():
    inner = he.error_with_headers(he.error_400_bad_request("test"), {"X-A": "1"})
    try:
        try:
            raise inner
        except HeadersError as exc:
            raise RuntimeError("wrapped") from exc
    except RuntimeError as outer:
        result = he.error_with_headers(outer, {"X-A": "2"})
    assert result is outer
    assert inner.headers["X-A"] == ["1", "2"]


class _Ctx:
    def __init__(self, accept="application/json"):
        self.accept = accept
        self.headers = {}
        self.status = None
        self.body = io.BytesIO()

    def header(self, name):
        return self.accept if name == "Accept" else ""

    def set_header(self, name, value):
        self.headers[name] = value

    def set_status(self, status):
        self.status = status

    def body_writer(self):
        return self.body


class _Api:
    def __init__(self, negotiate_error=None, transform_error=None):
        self.negotiate_error = negotiate_error
        self.transform_error = transform_error
        self.marshalled = None
        self.transform_status = None

    def negotiate(self, accept):
        if self.negotiate_error:
            raise self.negotiate_error
        return "application/json"

    def transform(self, ctx, status, value):
        if self.transform_error:
            raise self.transform_error
        self.transform_status = status
        return value

    def marshal(self, writer, ct, value):
        self.marshalled = (ct, value)
        writer.write(str(value).encode())


def test_write_err_success():
    api, ctx = _Api(), _Ctx()
    he.write_err(api, ctx, 400, "bad request")
    assert ctx.headers["Content-Type"] == "application/problem+json"
    assert ctx.status == 400
    assert api.transform_status == "400"
    assert api.marshalled[0] == "application/problem+json"
    assert api.marshalled[1].detail == "bad request"
    assert ctx.body.getvalue() == b"bad request"


def test_negotiate_error():
    api = _Api(negotiate_error=ValueError("unknown content type"))
    with pytest.raises(ValueError, match="unknown content type"):
        he.write_err(api, _Ctx(accept="bad/type"), 400, "bad request")


def test_transform_error():
    api = _Api(transform_error=RuntimeError("whoops"))
    with pytest.raises(RuntimeError, match="whoops"):
        he.write_err(api, _Ctx(), 400, "bad request")