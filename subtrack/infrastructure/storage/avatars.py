"""
Avatar blob storage: "upload bytes, get back a public URL".

LocalAvatarStorage writes under settings.MEDIA_DIR; main.py mounts that
directory at settings.MEDIA_URL so the returned URLs resolve.
"""
import logging
import shutil
from pathlib import Path

from subtrack.config import get_settings

logger = logging.getLogger(__name__)


class AvatarStorageError(RuntimeError):
    pass


class LocalAvatarStorage:
    def __init__(self, base_dir: str | Path, base_url: str):
        self.base_dir = Path(base_dir)
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.base_dir / path).resolve()
        if self.base_dir.resolve() not in target.parents:
            raise AvatarStorageError(f"Invalid storage path: {path}")
        return target

    def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """Store (overwrite) data at path and return its public URL."""
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise AvatarStorageError(str(e)) from e
        logger.info("Avatar stored: %s (%d bytes, %s)", path, len(data), content_type or "?")
        return f"{self.base_url}/{path}"

    def remove(self, prefix: str, keep: str | None = None) -> int:
        """Remove every file under prefix except keep. Returns number of files removed."""
        folder = self._resolve(prefix)
        if not folder.exists():
            return 0
        if keep is None:
            count = sum(1 for p in folder.rglob("*") if p.is_file())
            try:
                shutil.rmtree(folder)
            except OSError as e:
                raise AvatarStorageError(str(e)) from e
            return count

        kept = self._resolve(keep)
        count = 0
        for p in folder.rglob("*"):
            if p.is_file() and p.resolve() != kept:
                try:
                    p.unlink()
                except OSError as e:
                    raise AvatarStorageError(str(e)) from e
                count += 1
        return count


def get_avatar_storage() -> LocalAvatarStorage:
    settings = get_settings()
    return LocalAvatarStorage(settings.MEDIA_DIR, settings.MEDIA_URL)
