# humakit

Small building blocks for HTTP APIs:

- **Problem-details errors** (`humakit.errors`). `ErrorModel` and `ErrorDetail`
  follow RFC 9457 and are exceptions you can raise. Ready-made constructors
  such as `error_400_bad_request`, `error_404_not_found` and
  `status_304_not_modified` are included. `error_with_headers` attaches
  response headers to an error. If the error's chain already holds headers,
  the new ones are merged into them. `set_error_factory` replaces the factory
  that `new_error` and the constructors use; passing `None` restores the
  default.
- **CBOR format** (`humakit.cbor_format`). `cbor_marshal` writes canonical
  CBOR to a binary stream, with datetimes written as epoch timestamps.
  `cbor_unmarshal` decodes bytes. A `Format` pairs a marshaller with an
  unmarshaller. `CBOR_FORMATS` maps `application/cbor` and `cbor` to
  `DEFAULT_CBOR_FORMAT`.
- **Multipart files** (`humakit.formdata`). `FileHeader` describes an uploaded
  part. `FormFile` is the result of reading it. `MimeTypeValidator` checks a
  part's media type against a comma-separated accept list. When a part
  declares no media type, `detect_content_type` sniffs one from its first
  bytes.
- **SSE message producer** (`humakit.producer`). `Producer` emits the FizzBuzz
  sequence (`NumberMessage`, `SpecialMessage`) to every registered
  `queue.Queue`.
- **Terminal recording runner** (`humakit.asciinema_run`). It types a shell
  script into an `asciinema rec` session, one character at a time.

## Install

```
pip install humakit
```

## Errors

```python
from humakit.errors import ErrorDetail, error_404_not_found

err = error_404_not_found(
    "no such item",
    ErrorDetail(message="unknown id", location="path.item-id", value="abc"),
)
err.status                              # 404
err.title                               # "Not Found"
str(err)                                # "no such item"
str(err.errors[0])                      # "unknown id (path.item-id: abc)"
err.content_type("application/json")    # "application/problem+json"
err.content_type("application/cbor")    # "application/problem+cbor"
err.to_dict()                           # serializable form, empty fields left out
```

`ErrorModel.add` appends another error. An object with an `error_detail()`
method is used as is. Any other exception becomes an `ErrorDetail` holding its
message.

`write_err(api, ctx, status, msg, *errors)` writes an error response. It works
through objects that you supply:

- `api` provides `negotiate(accept)`, `transform(ctx, status, value)` and
  `marshal(writer, content_type, value)`.
- `ctx` provides `header(name)`, `set_header(name, value)`, `set_status(code)`
  and `body_writer()`.

## CBOR

```python
import io
from humakit.cbor_format import cbor_marshal, cbor_unmarshal

buf = io.BytesIO()
cbor_marshal(buf, {"hello": "world"})
cbor_unmarshal(buf.getvalue())          # {"hello": "world"}
```

## Multipart files

```python
from humakit.formdata import FileHeader, read_single_file, read_multiple_files

files = {"avatar": [FileHeader("me.png", b"\x89PNG\r\n\x1a\n...")]}
f = read_single_file(files, "avatar", required=True, content_type="image/*")
f.content_type   # "image/png" (sniffed, as no type was declared)
f.is_set, f.size, f.filename
```

Failures raise `ErrorDetail`:

- `read_single_file` raises when a required file is missing.
- It also raises when more than one file was sent under the key.
- It raises when the media type is not accepted.

`read_multiple_files` does not stop at the first failure. It returns
`(files, errors)`, and each failed file stays in the list as an unset
`FormFile`.

If the accept list contains `text/plain` or `application/octet-stream`, every
file is accepted. The default list is `application/octet-stream`.

## SSE producer

```python
import queue, threading
from humakit.producer import CLOSED, Producer

producer = Producer(interval=0.5)
client = queue.Queue(maxsize=1)
producer.add_client(client)
threading.Thread(target=producer.produce, daemon=True).start()
client.get()        # NumberMessage(value=1)
producer.cancel()   # every client then receives CLOSED
```

When a client's queue is full, `emit` drops that client and sends it `CLOSED`.

## Recording a terminal session

`asciinema` must be on your `PATH`. Write a script in which each line is typed
into the recorded shell. Lines that start with `#$` are control commands:

```
#$ delay 60
echo hello
#$ wait 500
ls
```

- `delay <ms>` sets the typing interval per character. The default is 40 ms.
- `wait <ms>` sets the pause after each line. The default is 100 ms.

An unknown control command, or a missing or non-integer argument, stops
parsing. The error reports the line number.

Any arguments after the script are passed on to `asciinema rec`:

```
asciinema-run demo.sh demo.cast
```

If no output file is given, the runner waits for Enter before finishing. Ctrl-C
passes an interrupt to the recorder instead.

## What this package does not do

This package has no router, request handling or server. It does not register
operations or generate OpenAPI documents. It does not parse multipart request
bodies into `FileHeader` objects; you build those yourself. `write_err` and the
`Producer` need an application that supplies the request context and the
connections to clients.

## Tests

```
pip install -e ".[test]"
pytest
```