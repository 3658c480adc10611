"""HTTP API building blocks: problem-details errors, CBOR, multipart files, an SSE producer and a recording runner."""

__version__ = "0.1.0"
__all__ = ["__version__"]