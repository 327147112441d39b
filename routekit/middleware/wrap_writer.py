"""A response writer proxy that records the status and the bytes written."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, BinaryIO

from ..web import Headers, ResponseWriter

_COPY_CHUNK = 32 * 1024


def _has(obj: Any, name: str) -> bool:
    return callable(getattr(obj, name, None))


class BasicWriter:
    """Wraps a response writer with only the core writer methods."""

    def __init__(self, w: ResponseWriter):
        self.response_writer = w
        self.wrote_header = False
        self._code = 0
        self._bytes = 0
        self._tee: BinaryIO | None = None

    @property
    def headers(self) -> Headers:
        return self.response_writer.headers

    def write_header(self, code: int) -> None:
        """Send the status code; later calls are ignored."""
        if not self.wrote_header:
            self._code = int(code)
            self.wrote_header = True
            self.response_writer.write_header(code)

    def write(self, data: bytes | str) -> int:
        """Write body bytes, copying them to the tee writer if one is set."""
        if isinstance(data, str):
            data = data.encode()
        self._maybe_write_header()
        n = self.response_writer.write(data)
        try:
            if self._tee is not None:
                self._tee.write(data[:n])
        finally:
            self._bytes += n
        return n

    def _maybe_write_header(self) -> None:
        if not self.wrote_header:
            self.write_header(HTTPStatus.OK)

    def status(self) -> int:
        """The status sent, or 0 if none was sent yet."""
        return self._code

    def bytes_written(self) -> int:
        """The number of body bytes sent."""
        return self._bytes

    def tee(self, w: BinaryIO) -> None:
        """Also copy every body write to ``w``, replacing any earlier tee."""
        self._tee = w

    def unwrap(self) -> ResponseWriter:
        """Return the wrapped writer."""
        return self.response_writer


def _flush(writer: BasicWriter) -> None:
    writer.wrote_header = True
    writer.response_writer.flush()


def _hijack(writer: BasicWriter) -> Any:
    return writer.response_writer.hijack()


class FlushWriter(BasicWriter):
    """A BasicWriter that can flush."""

    def flush(self) -> None:
        _flush(self)


class HijackWriter(BasicWriter):
    """A BasicWriter that can hand over the connection."""

    def hijack(self) -> Any:
        return _hijack(self)


class FlushHijackWriter(BasicWriter):
    """A BasicWriter that can flush and hand over the connection."""

    def flush(self) -> None:
        _flush(self)

    def hijack(self) -> Any:
        return _hijack(self)


class HttpFancyWriter(BasicWriter):
    """An HTTP/1 writer that can flush, hand over the connection and copy from readers."""

    def flush(self) -> None:
        _flush(self)

    def hijack(self) -> Any:
        return _hijack(self)

    def read_from(self, reader: BinaryIO) -> int:
        """Copy everything from ``reader`` into the response; return the byte count."""
        if self._tee is not None:
            total = 0
            while chunk := reader.read(_COPY_CHUNK):
                self.write(chunk)
                total += len(chunk)
            return total
        self._maybe_write_header()
        n = self.response_writer.read_from(reader)
        self._bytes += n
        return n


class Http2FancyWriter(BasicWriter):
    """An HTTP/2 writer that can flush and push."""

    def flush(self) -> None:
        _flush(self)

    def push(self, target: str, opts: Any) -> Any:
        return self.response_writer.push(target, opts)


def new_wrap_response_writer(w: ResponseWriter, proto_major: int) -> BasicWriter:
    """Wrap ``w`` in the proxy exposing the same optional abilities ``w`` has."""
    fl = _has(w, "flush")
    if proto_major == 2:
        if fl and _has(w, "push"):
            return Http2FancyWriter(w)
    else:
        hj = _has(w, "hijack")
        rf = _has(w, "read_from")
        if fl and hj and rf:
            return HttpFancyWriter(w)
        if fl and hj:
            return FlushHijackWriter(w)
        if hj:
            return HijackWriter(w)
    if fl:
        return FlushWriter(w)
    return BasicWriter(w)