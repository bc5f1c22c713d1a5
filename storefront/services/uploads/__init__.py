import logging
import secrets
import shutil
import time
from pathlib import Path

from fastapi import UploadFile

from storefront.utils.config import settings


logger = logging.getLogger(__name__)


class ImageStore:
    """Stores uploaded product images as flat files under one directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def save(self, upload: UploadFile) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        suffix = Path(upload.filename or "").suffix.lower()
        file_name = f"product_{int(time.time() * 1000)}_{secrets.randbelow(10**9)}{suffix}"
        with (self.directory / file_name).open("wb") as target:
            shutil.copyfileobj(upload.file, target)
        return file_name

    def save_all(self, uploads: list[UploadFile]) -> list[str]:
        saved: list[str] = []
        try:
            for upload in uploads:
                saved.append(self.save(upload))
        except OSError:
            self.delete_all(saved)
            raise
        return saved

    def delete_all(self, file_names: list[str]) -> None:
        for file_name in file_names:
            # Stored names are flat; never follow a path out of the directory
            path = self.directory / Path(file_name).name
            try:
                path.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove image %s", path)


def get_image_store() -> ImageStore:
    return ImageStore(Path(settings.upload_dir) / "products")
