"""Operator tasks for the gallery storage core.

Run through the ``eventgallery`` console script, e.g.::

    eventgallery stats --env-file .env
    eventgallery upload ./photos --tag reception --dry-run
    eventgallery wipe --confirm DELETE_ALL_DATA
"""

import asyncio
import json
import os
from pathlib import Path

import structlog
from invoke import Collection, Context, Program, task

from .. import __version__
from ..config import load_env_file
from ..errors import GalleryError
from ..health import get_application_info
from ..logging_config import configure_structured_logging
from ..services.gallery import GalleryService, create_gallery_service

logger = structlog.get_logger()

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
}


def _get_content_type(filename: str) -> str:
    return CONTENT_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")


def _prepare(env_file: str) -> GalleryService:
    # Logs go to stderr so stdout stays machine-readable.
    configure_structured_logging()
    if os.path.exists(env_file):
        load_env_file(env_file)
    else:
        logger.warning(f"Environment file not found at {env_file}. Using existing environment.")
    return create_gallery_service()


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def find_image_files(directory: str, recursive: bool = False) -> list[str]:
    """Image files under ``directory`` with a supported extension, sorted."""
    image_files = []
    if recursive:
        for root, _, files in os.walk(directory):
            for name in files:
                if Path(name).suffix.lower() in CONTENT_TYPES:
                    image_files.append(os.path.join(root, name))
    else:
        for name in os.listdir(directory):
            path = os.path.join(directory, name)
            if os.path.isfile(path) and Path(name).suffix.lower() in CONTENT_TYPES:
                image_files.append(path)
    return sorted(image_files)


@task
def stats(c: Context, env_file: str = ".env"):
    """Show gallery counts and backend usage."""
    service = _prepare(env_file)

    async def run() -> dict:
        await service.load()
        storage_stats = await service.adapter.get_stats()
        return {"gallery": service.stats().to_dict(), "storage": storage_stats.to_dict()}

    _print_json(asyncio.run(run()))


@task
def list_photos(c: Context, env_file: str = ".env", include_deleted: bool = False, tag: str = "", person: str = ""):
    """List photo records, optionally including soft-deleted ones."""
    service = _prepare(env_file)

    async def run() -> list[dict]:
        await service.load()
        photos = service.list_visible(include_deleted=include_deleted, tag=tag or None, person=person or None)
        return [photo.to_dict() for photo in photos]

    _print_json(asyncio.run(run()))


@task
def upload(c: Context, directory: str, tag: str = "other", env_file: str = ".env", recursive: bool = False, dry_run: bool = False):
    """
    Upload images from a local directory.

    Args:
        c (Context): Invoke context.
        directory (str): Directory containing images.
        tag (str): Category for every uploaded photo: wedding, reception or other.
        env_file (str): Path to the environment file. Default is '.env'.
        recursive (bool): Search subdirectories too.
        dry_run (bool): List files without uploading.
    """
    if not os.path.isdir(directory):
        logger.error(f"Directory not found: {directory}")
        return

    image_files = find_image_files(directory, recursive)
    if not image_files:
        logger.warning("No image files found to process.")
        return

    if dry_run:
        print("\n--- Dry Run Mode: Files to be processed ---")
        for file_path in image_files:
            print(f"- {file_path}")
        print("--- End of Dry Run ---")
        return

    service = _prepare(env_file)

    async def run() -> tuple[int, int]:
        await service.load()
        successful = 0
        failed = 0
        for file_path in image_files:
            filename = os.path.basename(file_path)
            try:
                data = Path(file_path).read_bytes()
                photo = await service.upload(data, filename, _get_content_type(filename), tag)
                logger.info("Upload successful", filename=filename, photo_id=photo.id)
                successful += 1
            except (GalleryError, OSError) as e:
                logger.error("Upload failed", filename=filename, error=str(e))
                failed += 1
        return successful, failed

    successful, failed = asyncio.run(run())
    logger.info("Batch upload finished.", successful=successful, failed=failed, total=len(image_files))
    print(f"\nBatch upload complete. Successful: {successful}, Failed: {failed}")


@task
def wipe(c: Context, confirm: str = "", env_file: str = ".env"):
    """Delete every photo and record. Requires --confirm DELETE_ALL_DATA."""
    service = _prepare(env_file)

    async def run() -> dict:
        await service.load()
        result = await service.wipe_all(confirm)
        return {"success": True, **result.to_dict()}

    try:
        _print_json(asyncio.run(run()))
    except GalleryError as e:
        _print_json({"success": False, "error": e.user_message})
        raise SystemExit(1) from e


@task
def storage_status(c: Context, env_file: str = ".env"):
    """Report backend reachability and expired URL count."""
    service = _prepare(env_file)

    async def run() -> dict:
        await service.load()
        return await service.storage_status()

    _print_json({"application": get_application_info(), "storage": asyncio.run(run())})


namespace = Collection(stats, list_photos, upload, wipe, storage_status)
program = Program(namespace=namespace, version=__version__)
