# teacher_directory/directory.py
"""
Directory operations over Person records: list, search, detail, create,
update, delete, and image lookup.
"""

import logging
from typing import Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, models, schemas
from .config import settings
from .errors import InvalidRequest, NotFound
from .images import process_upload
from .storage import build_image_row, read_image_bytes, remove_image_file

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "floor", "branch", "directions")


def _clean(value: Optional[str]) -> str:
    return value.strip() if value is not None else ""


async def list_names(db: AsyncSession) -> List[str]:
    return await crud.list_names(db)


async def search(db: AsyncSession, query: Optional[str]) -> List[models.Person]:
    query = _clean(query)
    if not query:
        raise InvalidRequest("Search query is required")
    return await crud.search_people(db, query, settings.search_limit)


async def get_detail(db: AsyncSession, name: str) -> models.Person:
    person = await crud.get_person_by_name(db, name)
    if person is None:
        raise NotFound("Teacher not found.")
    return person


async def create(
    db: AsyncSession,
    fields: schemas.PersonFields,
    image_bytes: Optional[bytes],
    mime_type: Optional[str],
) -> models.Person:
    """
    Validate, resize the photo and persist the Person with its Image.

    Validation happens before any processing. The Image row and the Person
    row commit together; a file written in filesystem mode is removed again
    if the commit fails.
    """
    values = {field: _clean(getattr(fields, field)) for field in REQUIRED_FIELDS}
    missing = [field for field, value in values.items() if not value]
    if not image_bytes:
        missing.append("image")
    if missing:
        logger.info(f"Validation failed, missing: {missing}")
        raise InvalidRequest("All fields are required.", details={"missing": missing})

    processed = await run_in_threadpool(
        process_upload,
        data=image_bytes,
        mime_type=mime_type,
        size=(settings.image_width, settings.image_height),
        fit=settings.image_fit,
        quality=settings.jpeg_quality,
        max_bytes=settings.max_upload_bytes,
    )

    image = build_image_row(processed, settings.image_storage, settings.images_dir)
    try:
        person = await crud.create_person_with_image(db, image=image, **values)
    except Exception:
        await db.rollback()
        remove_image_file(image.path)
        raise

    logger.info(f"[audit] created person id={person.id} name={person.name!r} image_id={person.image_id}")
    return person


async def update(db: AsyncSession, name: str, changes: schemas.PersonUpdate) -> models.Person:
    sent = changes.model_dump(exclude_unset=True)
    updates: Dict[str, str] = {}
    for field, value in sent.items():
        value = _clean(value)
        if not value:
            raise InvalidRequest(f"Field '{field}' cannot be empty.")
        updates[field] = value

    person = await get_detail(db, name)
    person = await crud.update_person(db, person, updates)
    logger.info(f"[audit] updated person id={person.id} name={name!r} fields={sorted(updates)}")
    return person


async def delete(db: AsyncSession, name: str) -> models.Person:
    person = await get_detail(db, name)
    image = await crud.delete_person(db, person)
    if image is not None:
        remove_image_file(image.path)
    logger.info(f"[audit] deleted person id={person.id} name={name!r}")
    return person


async def get_image(db: AsyncSession, image_id: int) -> Tuple[bytes, str]:
    image = await crud.get_image(db, image_id)
    if image is None:
        raise NotFound("Image not found")
    try:
        data = await run_in_threadpool(read_image_bytes, image)
    except FileNotFoundError:
        logger.error(f"Image {image_id} is missing its stored bytes.")
        raise NotFound("Image not found")
    return data, image.mime_type


async def get_image_for_name(db: AsyncSession, name: str) -> Tuple[bytes, str]:
    person = await get_detail(db, name)
    if person.image_id is None:
        raise NotFound("Image not found")
    return await get_image(db, person.image_id)
