# portal/salary/storage.py
"""
Object storage for salary slip files.

Blobs live under a root directory and are addressed by relative paths such
as ``<employee_ref>/2024/november.pdf``. Downloads go through signed,
time-limited links rather than a public mount.
"""
import logging
import os
import tempfile
from datetime import timedelta
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple

from portal.auth.jwt_handler import PURPOSE_STORAGE, create_token, decode_token
from portal.config import STORAGE_ROOT
from portal.errors import UpstreamRequestFailed

logger = logging.getLogger(__name__)

SIGNED_ROUTE = "/storage/signed"


class ObjectStorage:
    def __init__(self, root=STORAGE_ROOT, bucket: str = "salary-slips"):
        self.bucket = bucket
        self.root = Path(root) / bucket

    def _resolve(self, path: str) -> Path:
        rel = PurePosixPath(str(path or "").replace("\\", "/"))
        if not rel.parts or rel.is_absolute() or any(p in ("..", ".", "") for p in rel.parts):
            raise ValueError(f"Invalid storage path: {path!r}")
        return self.root.joinpath(*rel.parts)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def upload(self, path: str, data: bytes, upsert: bool = True) -> str:
        """
        Store ``data`` at ``path``. With ``upsert`` an existing blob is replaced
        atomically, otherwise FileExistsError is raised.
        """
        dest = self._resolve(path)
        if not upsert and dest.exists():
            raise FileExistsError(path)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(dest.parent), suffix=".part")
            try:
                with os.fdopen(fd, "wb") as out_f:
                    out_f.write(data)
                os.replace(tmp, dest)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as exc:
            raise UpstreamRequestFailed("Failed to store file") from exc
        logger.info("stored %s/%s (%d bytes)", self.bucket, path, len(data))
        return path

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise
        except OSError as exc:
            raise UpstreamRequestFailed("Failed to read file") from exc

    def create_signed_url(self, path: str, ttl_seconds: int, download_name: str = None) -> str:
        self._resolve(path)
        token = create_token(
            {"bucket": self.bucket, "path": path, "name": download_name or PurePosixPath(path).name},
            PURPOSE_STORAGE,
            timedelta(seconds=ttl_seconds),
        )
        return f"{SIGNED_ROUTE}/{token}"

    def verify_signed_token(self, token: str) -> Optional[Tuple[str, str]]:
        """Return (path, download name) a signed token grants, or None if invalid/expired."""
        payload = decode_token(token, PURPOSE_STORAGE)
        if not payload or payload.get("bucket") != self.bucket or not payload.get("path"):
            return None
        return payload["path"], payload.get("name") or PurePosixPath(payload["path"]).name


_storage: Optional[ObjectStorage] = None


def get_storage() -> ObjectStorage:
    global _storage
    if _storage is None:
        _storage = ObjectStorage()
    return _storage
