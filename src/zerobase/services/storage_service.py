"""Storage quota manager - per-project file storage on local disk.

Usage is measured from the filesystem every time (like ``du -sm``) rather than
kept as a running counter. Uploads are written first and checked afterwards;
a file that pushes usage over the quota is removed again. Two concurrent
uploads can both pass the check, an accepted race.
"""

import asyncio
import math
import os
import shutil
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from src.zerobase.core.config import Settings, get_settings
from src.zerobase.core.exceptions import BadRequestError, NotFoundError, QuotaExceededError
from src.zerobase.core.logging import get_logger
from src.zerobase.core.security.validators import sanitize_filename
from src.zerobase.models import Project

logger = get_logger(__name__)

BYTES_PER_MB = 1024 * 1024
CHUNK_SIZE = 1024 * 1024
TEMP_PREFIX = ".upload-"


def disk_usage_mb(path: Path) -> int:
    """Total size of regular files under ``path`` in whole MB, rounded up."""
    if not path.exists():
        return 0
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += os.lstat(os.path.join(root, name)).st_size
            except FileNotFoundError:
                continue  # removed while walking
    return math.ceil(total / BYTES_PER_MB)


def available_disk_mb(path: Path) -> int:
    """Free space on the filesystem holding ``path`` (or its nearest existing parent)."""
    target = path
    while not target.exists() and target != target.parent:
        target = target.parent
    return shutil.disk_usage(target).free // BYTES_PER_MB


def _copy_limited(source: BinaryIO, destination: Path, max_bytes: int) -> int:
    """Copy ``source`` to ``destination``; stop and raise once ``max_bytes`` is passed."""
    written = 0
    with open(destination, "wb") as out:
        while chunk := source.read(CHUNK_SIZE):
            written += len(chunk)
            if written > max_bytes:
                limit_mb = max_bytes // BYTES_PER_MB
                raise BadRequestError(f"File too large. Maximum size is {limit_mb} MB")
            out.write(chunk)
    return written


class StorageQuotaManager:
    """Per-project storage directory, quota and files."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        measure_usage: Callable[[Path], int] = disk_usage_mb,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self._measure_usage = measure_usage

    @property
    def root(self) -> Path:
        return Path(self.settings.storage_path)

    def project_dir(self, project_id: str) -> Path:
        return self.root / project_id

    def create_project_directory(self, project_id: str) -> Path:
        path = self.project_dir(project_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    async def usage_mb(self, project_id: str) -> int:
        return await asyncio.to_thread(self._measure_usage, self.project_dir(project_id))

    async def available_mb(self) -> int:
        return await asyncio.to_thread(available_disk_mb, self.root)

    async def get_info(self, project: Project) -> dict:
        return {
            "project_id": project.id,
            "quota_mb": project.storage_quota_mb,
            "used_mb": await self.usage_mb(project.id),
            "available_disk_mb": await self.available_mb(),
            "storage_path": str(self.project_dir(project.id)),
        }

    async def update_quota(self, project: Project, new_quota_mb: int) -> dict:
        """Set a new quota.

        Raises:
            BadRequestError: Below current usage, or more than the disk could hold.
        """
        if new_quota_mb < 1:
            raise BadRequestError("Invalid quota value")
        used_mb = await self.usage_mb(project.id)
        free_mb = await self.available_mb()
        if new_quota_mb < used_mb:
            raise BadRequestError(f"Cannot set quota below current usage ({used_mb} MB used)")
        if new_quota_mb > free_mb + used_mb:
            raise BadRequestError(
                f"Not enough disk space. Only {free_mb} MB available on server."
            )

        project.storage_quota_mb = new_quota_mb
        self.session.add(project)
        await self.session.commit()
        logger.info("Storage quota updated", project_id=project.id, quota_mb=new_quota_mb)
        return {"quota_mb": new_quota_mb, "used_mb": used_mb, "available_disk_mb": free_mb}

    async def save_upload(self, project: Project, upload: UploadFile) -> dict:
        """Store an uploaded file, then enforce the quota.

        The upload goes to a temporary name first, so a rejected upload never
        replaces an existing file of the same name. Usage is measured after the
        write, so the limit is the quota plus ``storage_quota_grace_mb``: the grace
        absorbs the upload that crosses the quota. With a 1000 MB quota and the
        default 50 MB grace, 900 MB used plus a 150 MB file (1050 MB) is accepted
        and a further file is then rejected.

        Raises:
            BadRequestError: Unsupported MIME type, bad filename, or file too large.
            QuotaExceededError: Usage after the write exceeds quota plus grace.
        """
        if upload.content_type not in self.settings.allowed_upload_types:
            raise BadRequestError(f"Unsupported file type: {upload.content_type}")
        filename = sanitize_filename(upload.filename or "")

        directory = self.create_project_directory(project.id)
        destination = directory / filename
        temp_path = directory / f"{TEMP_PREFIX}{uuid.uuid4().hex}"
        max_bytes = self.settings.max_upload_mb * BYTES_PER_MB

        try:
            size = await asyncio.to_thread(_copy_limited, upload.file, temp_path, max_bytes)
            used_mb = await self.usage_mb(project.id)
            limit_mb = project.storage_quota_mb + self.settings.storage_quota_grace_mb
            if used_mb > limit_mb:
                raise QuotaExceededError(
                    f"Storage quota exceeded. Used: {used_mb} MB / {project.storage_quota_mb} MB"
                )
            await asyncio.to_thread(os.replace, temp_path, destination)
        finally:
            temp_path.unlink(missing_ok=True)

        logger.info("File uploaded", project_id=project.id, filename=filename, size=size)
        return {
            "name": filename,
            "original_name": upload.filename,
            "size": size,
            "mimetype": upload.content_type,
        }

    async def list_files(self, project_id: str) -> list[dict]:
        return await asyncio.to_thread(self._list_files, self.project_dir(project_id))

    @staticmethod
    def _list_files(directory: Path) -> list[dict]:
        if not directory.exists():
            return []
        files = []
        for entry in sorted(directory.iterdir()):
            if not entry.is_file() or entry.name.startswith(TEMP_PREFIX):
                continue
            stat = entry.stat()
            files.append(
                {
                    "name": entry.name,
                    "size_bytes": stat.st_size,
                    "size_mb": round(stat.st_size / BYTES_PER_MB, 2),
                    "modified_at": datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                    "ext": entry.suffix.lower(),
                }
            )
        return files

    def file_path(self, project_id: str, filename: str) -> Path:
        """Resolve a stored file. Raises NotFoundError if it does not exist."""
        path = self.project_dir(project_id) / sanitize_filename(filename)
        if not path.is_file():
            raise NotFoundError("File not found")
        return path

    async def delete_file(self, project_id: str, filename: str) -> None:
        path = self.file_path(project_id, filename)
        await asyncio.to_thread(path.unlink)
        logger.info("File deleted", project_id=project_id, filename=path.name)
