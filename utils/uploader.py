"""
Blob storage collaborator for avatar / cover images.

`upload(local_path)` takes a file on local disk and returns its public URL,
or None when the upload did not happen. The local file is consumed either way.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from typing import Optional

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class BlobUploader:
    def upload(self, local_path: Optional[str]) -> Optional[str]:
        raise NotImplementedError


class LocalBlobUploader(BlobUploader):
    """Stores blobs under `media_root` and serves them from `base_url`."""

    def __init__(self, media_root: str, base_url: str):
        self.media_root = media_root
        self.base_url = base_url.rstrip("/")

    def upload(self, local_path: Optional[str]) -> Optional[str]:
        if not local_path:
            return None
        try:
            if not os.path.isfile(local_path):
                return None
            ext = os.path.splitext(local_path)[1].lower()
            name = f"{uuid.uuid4().hex}{ext}"
            os.makedirs(self.media_root, exist_ok=True)
            shutil.copyfile(local_path, os.path.join(self.media_root, name))
            return f"{self.base_url}/{name}"
        except OSError:
            logger.exception("Blob upload failed for %s", local_path)
            return None
        finally:
            discard_uploads(local_path)


def stash_upload(file_storage, tmp_dir: str) -> Optional[str]:
    """Write an incoming werkzeug FileStorage to a temp file and return its path."""
    if file_storage is None or not file_storage.filename:
        return None
    os.makedirs(tmp_dir, exist_ok=True)
    suffix = os.path.splitext(secure_filename(file_storage.filename))[1]
    fd, path = tempfile.mkstemp(suffix=suffix, dir=tmp_dir)
    with os.fdopen(fd, "wb") as fh:
        file_storage.save(fh)
    return path


def discard_uploads(*paths: Optional[str]) -> None:
    """Remove temp files that are still around."""
    for path in paths:
        if path and os.path.exists(path):
            try:
                os.remove(path)
            except OSError:
                logger.warning("Could not remove temp upload %s", path)
