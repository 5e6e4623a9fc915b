"""Incremental multipart/form-data encoder writing into a byte stream."""
from __future__ import annotations

from typing import Optional, Protocol

from urllib3.fields import RequestField
from urllib3.filepost import choose_boundary


class ByteSink(Protocol):
    def write(self, data: bytes) -> int:
        ...


class MultipartWriter:
    """Frame parts with boundaries as they are written, without buffering them.

    Usage mirrors a file upload form::

        form = MultipartWriter(sink)
        part = form.create_form_file("file", "dump.sql")
        part.write(chunk)
        form.close()
    """

    def __init__(self, sink: ByteSink, boundary: Optional[str] = None) -> None:
        self._sink = sink
        self.boundary = boundary or choose_boundary()
        self._part_open = False
        self._closed = False

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def create_form_file(self, field_name: str, filename: str) -> "PartWriter":
        return self.create_part(field_name, filename=filename, content_type="application/octet-stream")

    def create_part(
        self,
        field_name: str,
        *,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> "PartWriter":
        if self._closed:
            raise ValueError("multipart writer is closed")
        field = RequestField(name=field_name, data=b"", filename=filename)
        field.make_multipart(content_type=content_type)
        if self._part_open:
            self._sink.write(b"\r\n")
        self._sink.write(f"--{self.boundary}\r\n".encode("latin-1"))
        self._sink.write(field.render_headers().encode("utf-8"))
        self._part_open = True
        return PartWriter(self._sink)

    def close(self) -> None:
        """Terminate the open part and write the closing boundary."""

        if self._closed:
            return
        if self._part_open:
            self._sink.write(b"\r\n")
        self._sink.write(f"--{self.boundary}--\r\n".encode("latin-1"))
        self._closed = True


class PartWriter:
    def __init__(self, sink: ByteSink) -> None:
        self._sink = sink

    def write(self, data: bytes) -> int:
        return self._sink.write(data)


__all__ = ["MultipartWriter", "PartWriter"]
