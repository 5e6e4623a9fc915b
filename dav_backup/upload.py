"""Streaming multipart upload of a local file to a WebDAV URL."""
from __future__ import annotations

import logging
import shutil
import threading
from pathlib import Path
from typing import Optional, Union

import requests

from .multipart import MultipartWriter
from .pipe import BodyPipe, ClosedPipeError, ErrorCell
from .webdav import TransportError, WebDAVClient

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
FORM_FIELD = "file"


class StreamError(Exception):
    """Raised when producing the multipart body of an upload failed."""


def upload_file_multipart(
    client: WebDAVClient,
    url: str,
    path: Union[str, Path],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> requests.Response:
    """PUT *path* to *url* as a single-part ``multipart/form-data`` body.

    The body is produced by a background thread and streamed through a
    :class:`~dav_backup.pipe.BodyPipe`, so neither the file nor the encoded
    envelope is held in memory. The first error hit while producing the body
    wins over whatever the HTTP layer reported: a request that completed with
    a corrupt body is never returned as a response.

    Returns the server response whatever its status code. Raises
    :class:`StreamError` when the body could not be produced and
    :class:`~dav_backup.webdav.TransportError` when the request failed.
    """

    path = Path(path)
    pipe = BodyPipe()
    form = MultipartWriter(pipe.writer)
    errors = ErrorCell()

    producer = threading.Thread(
        target=_produce_body,
        args=(path, form, pipe, errors, chunk_size),
        name=f"upload-body-{path.name}",
        daemon=True,
    )
    producer.start()

    response: Optional[requests.Response] = None
    transport_error: Optional[TransportError] = None
    try:
        request = client.new_request(
            "PUT", url, body=pipe.reader, headers={"Content-Type": form.content_type}
        )
        response = client.send(request)
    except TransportError as exc:
        transport_error = exc
    finally:
        # Unblocks the producer if the request ended before draining the body.
        pipe.reader.close()
        producer.join()

    producer_error = errors.error
    abandoned = isinstance(producer_error, ClosedPipeError) and transport_error is not None
    if producer_error is not None and not abandoned:
        if response is not None:
            response.close()
        raise StreamError(f"Streaming '{path}' to {url} failed: {producer_error}") from producer_error
    if transport_error is not None:
        raise transport_error

    LOGGER.debug("PUT %s -> HTTP %s", url, response.status_code)
    return response


def _produce_body(
    path: Path,
    form: MultipartWriter,
    pipe: BodyPipe,
    errors: ErrorCell,
    chunk_size: int,
) -> None:
    try:
        with path.open("rb", buffering=chunk_size) as source:
            part = form.create_form_file(FORM_FIELD, path.name)
            shutil.copyfileobj(source, part, chunk_size)
            form.close()
    except Exception as exc:  # recorded and re-raised by the caller
        errors.set(exc)
    finally:
        pipe.writer.close(errors.error)


__all__ = ["DEFAULT_CHUNK_SIZE", "StreamError", "upload_file_multipart"]
