"""Resolve an image payload (inline base64, data URL, http(s) URL or local path) to raw bytes."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from pathlib import Path
from typing import Optional

import requests

from .model import ImageContent

DEFAULT_TIMEOUT = 15
MAX_IMAGE_BYTES = 20 * 1024 * 1024
CHUNK_SIZE = 64 * 1024

_DATA_URL_RE = re.compile(r"^data:.*?;base64,(.+)$", re.IGNORECASE | re.DOTALL)


def strip_data_url_prefix(value: str) -> str:
    match = _DATA_URL_RE.match(value or "")
    return match.group(1) if match else (value or "")


class ImageLoader:
    """Fetch image bytes for image inserts; every failure is reported as ``None``.

    Local paths are only read from inside ``base_dir``; without one, local files are skipped.
    """

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        base_dir: Optional[Path] = None,
        max_bytes: int = MAX_IMAGE_BYTES,
        logger: Optional[logging.Logger] = None,
    ):
        self._session = session
        self._owns_session = session is None
        self.timeout = timeout
        self.base_dir = Path(base_dir).resolve() if base_dir is not None else None
        self.max_bytes = max_bytes
        self.log = logger or logging.getLogger(__name__)

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def close(self) -> None:
        """Close the HTTP session if this loader created it."""
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def load(self, image: ImageContent) -> Optional[bytes]:
        if image.base64:
            return self._decode(strip_data_url_prefix(image.base64))

        url = image.url.strip()
        if not url:
            return None
        if url.lower().startswith("data:image/"):
            return self._decode(strip_data_url_prefix(url))
        if url.lower().startswith(("http://", "https://")):
            return self._fetch(url)
        return self._read_file(url)

    def _decode(self, payload: str) -> Optional[bytes]:
        try:
            return base64.b64decode(re.sub(r"\s+", "", payload), validate=True)
        except (binascii.Error, ValueError) as exc:
            self.log.debug("Image payload is not valid base64: %s", exc)
            return None

    def _fetch(self, url: str) -> Optional[bytes]:
        try:
            resp = self.session.get(url, timeout=self.timeout, stream=True)
        except requests.RequestException as exc:
            self.log.debug("Image download failed for %s: %s", url, exc)
            return None

        try:
            if resp.status_code != 200:
                self.log.debug("Image download failed for %s (HTTP %s)", url, resp.status_code)
                return None

            declared = resp.headers.get("Content-Length")
            if declared and declared.isdigit() and int(declared) > self.max_bytes:
                self.log.debug("Image at %s declares %s bytes; over the %d byte cap", url, declared, self.max_bytes)
                return None

            data = bytearray()
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                data.extend(chunk)
                if len(data) > self.max_bytes:
                    self.log.debug("Image download for %s passed the %d byte cap; ignoring", url, self.max_bytes)
                    return None
        except requests.RequestException as exc:
            self.log.debug("Image download failed for %s: %s", url, exc)
            return None
        finally:
            resp.close()

        return bytes(data) or None

    def _local_path(self, raw: str) -> Optional[Path]:
        if self.base_dir is None:
            self.log.debug("Skipping local image %s: no base directory configured", raw)
            return None
        if Path(raw).is_absolute():
            self.log.debug("Skipping local image %s: absolute paths are not allowed", raw)
            return None
        path = (self.base_dir / raw).resolve()
        if not path.is_relative_to(self.base_dir):
            self.log.debug("Skipping local image %s: outside %s", raw, self.base_dir)
            return None
        return path

    def _read_file(self, raw: str) -> Optional[bytes]:
        path = self._local_path(raw)
        if path is None:
            return None
        try:
            if path.stat().st_size > self.max_bytes:
                self.log.debug("Image file %s is over the %d byte cap", path, self.max_bytes)
                return None
            return path.read_bytes()
        except OSError as exc:
            self.log.debug("Image file could not be read (%s): %s", path, exc)
            return None
