# teacher_directory/crud.py

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Dict, List, Optional

from . import models

# --- People ---

async def list_names(db: AsyncSession) -> List[str]:
    """Return every person's name in insertion order."""
    result = await db.execute(select(models.Person.name).order_by(models.Person.id))
    return list(result.scalars().all())


async def count_people(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(models.Person.id)))
    return result.scalar_one()


async def search_people(db: AsyncSession, query: str, limit: int) -> List[models.Person]:
    """Case-insensitive substring match on name."""
    stmt = (
        select(models.Person)
        .filter(models.Person.name_folded.contains(query.casefold(), autoescape=True))
        .order_by(models.Person.id)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_person_by_name(db: AsyncSession, name: str) -> Optional[models.Person]:
    """Fetch the first person with exactly this name."""
    result = await db.execute(
        select(models.Person).filter(models.Person.name == name).order_by(models.Person.id).limit(1)
    )
    return result.scalars().first()


async def create_person_with_image(
    db: AsyncSession,
    name: str,
    floor: str,
    branch: str,
    directions: str,
    image: models.Image,
) -> models.Person:
    """Insert the image and its owner in one transaction. The caller rolls back on failure."""
    db.add(image)
    await db.flush()
    db_person = models.Person(
        name=name,
        name_folded=name.casefold(),
        floor=floor,
        branch=branch,
        directions=directions,
        image_id=image.id,
    )
    db.add(db_person)
    await db.commit()
    await db.refresh(db_person)
    return db_person


async def update_person(db: AsyncSession, person: models.Person, changes: Dict[str, str]) -> models.Person:
    if "name" in changes:
        person.name_folded = changes["name"].casefold()
    for field, value in changes.items():
        setattr(person, field, value)
    await db.commit()
    await db.refresh(person)
    return person


async def delete_person(db: AsyncSession, person: models.Person) -> Optional[models.Image]:
    """Delete a person and the image it owns. Returns the deleted image, if any."""
    image = await get_image(db, person.image_id) if person.image_id is not None else None
    await db.delete(person)
    await db.flush()
    if image is not None:
        await db.delete(image)
    await db.commit()
    return image

# --- Images ---

async def get_image(db: AsyncSession, image_id: int) -> Optional[models.Image]:
    result = await db.execute(select(models.Image).filter(models.Image.id == image_id))
    return result.scalars().first()

# --- Credentials ---

async def get_credential(db: AsyncSession, username: str) -> Optional[models.Credential]:
    result = await db.execute(select(models.Credential).filter(models.Credential.username == username))
    return result.scalars().first()


async def count_credentials(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(models.Credential.id)))
    return result.scalar_one()


async def upsert_credential(db: AsyncSession, username: str, password_hash: str) -> bool:
    """Create or overwrite a credential. Returns True when a new row was created."""
    existing = await get_credential(db, username)
    if existing:
        existing.password_hash = password_hash
        created = False
    else:
        db.add(models.Credential(username=username, password_hash=password_hash))
        created = True
    await db.commit()
    return created


async def set_password_hash(db: AsyncSession, credential: models.Credential, password_hash: str):
    credential.password_hash = password_hash
    await db.commit()
