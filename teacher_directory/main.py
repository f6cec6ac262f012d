# teacher_directory/main.py

import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import crud, directory, models, schemas, security
from .config import settings
from .db import engine, get_db
from .errors import DirectoryError, Internal, InvalidRequest

# --- App Initialization ---
logging.basicConfig(level=settings.log_level)
app = FastAPI(title="Teacher Directory API")
templates = Jinja2Templates(directory=os.path.join(os.path.dirname(__file__), "templates"))

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# --- Startup Events ---
@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    if settings.image_storage == "filesystem":
        os.makedirs(settings.images_dir, exist_ok=True)
    async for db in get_db():
        total = await crud.count_people(db)
        logging.info(f"Directory ready with {total} people.")
        break


# --- Error Mapping ---
@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError):
    if exc.status_code >= 500:
        logging.error(f"{request.method} {request.url.path} failed: {exc.message}")
    content = {"error": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]
    return await directory_error_handler(request, InvalidRequest("Invalid request.", details={"errors": errors}))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


# --- Helpers ---
def image_url(request: Request, person: models.Person) -> Optional[str]:
    """Absolute URL for the person's photo, built from the request's scheme and host."""
    if person.image_id is None:
        return None
    return str(request.url_for("get_image", image_id=person.image_id))


def person_out(request: Request, person: models.Person) -> schemas.PersonOut:
    return schemas.PersonOut(
        name=person.name,
        branch=person.branch,
        floor=person.floor,
        directions=person.directions,
        imageUrl=image_url(request, person),
    )


def image_response(data: bytes, mime_type: str) -> Response:
    return Response(
        content=data,
        media_type=mime_type,
        headers={"Cache-Control": "public, max-age=31557600"},
    )


# --- Pages ---
@app.get("/", response_class=HTMLResponse)
async def read_root(request: Request):
    return templates.TemplateResponse(request, "index.html", {"search_delay_ms": 300, "min_query_length": 2})


# --- Directory Endpoints ---
@app.get("/api/people", response_model=schemas.NameListResponse)
async def list_people(db: AsyncSession = Depends(get_db)):
    try:
        names = await directory.list_names(db)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error fetching teachers: {e}", exc_info=True)
        raise Internal("Failed to fetch teacher data.")
    return {"teachers": [{"name": name} for name in names]}


@app.get("/api/search", response_model=schemas.SearchResponse)
async def search_people(request: Request, query: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    try:
        people = await directory.search(db, query)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error searching teachers: {e}", exc_info=True)
        raise Internal("Failed to search teachers")
    return {"teachers": [person_out(request, p) for p in people]}


@app.get("/api/directions/{name:path}", response_model=schemas.PersonOut)
async def get_directions(name: str, request: Request, db: AsyncSession = Depends(get_db)):
    try:
        person = await directory.get_detail(db, name)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error fetching teacher details: {e}", exc_info=True)
        raise Internal("Failed to fetch teacher details.")
    return person_out(request, person)


@app.get("/api/images/{image_id}", name="get_image")
async def get_image(image_id: int, db: AsyncSession = Depends(get_db)):
    try:
        data, mime_type = await directory.get_image(db, image_id)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error serving image {image_id}: {e}", exc_info=True)
        raise Internal("Failed to serve image")
    return image_response(data, mime_type)


@app.get("/api/teacher-image/{name:path}")
async def get_teacher_image(name: str, db: AsyncSession = Depends(get_db)):
    try:
        data, mime_type = await directory.get_image_for_name(db, name)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error serving image for {name!r}: {e}", exc_info=True)
        raise Internal("Failed to serve image")
    return image_response(data, mime_type)


@app.post("/api/add-teacher", status_code=201, response_model=schemas.CreatedPersonResponse)
async def add_teacher(
    request: Request,
    name: Optional[str] = Form(None),
    floor: Optional[str] = Form(None),
    branch: Optional[str] = Form(None),
    directions: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    admin: Optional[str] = Depends(security.require_admin),
    db: AsyncSession = Depends(get_db),
):
    fields = schemas.PersonFields(name=name, floor=floor, branch=branch, directions=directions)
    try:
        contents, mime_type = None, None
        if image is not None:
            # one byte past the ceiling is enough to reject
            contents = await image.read(settings.max_upload_bytes + 1)
            mime_type = image.content_type
        person = await directory.create(db, fields, contents, mime_type)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error adding teacher: {e}", exc_info=True)
        raise Internal("Failed to add teacher.")
    finally:
        if image is not None:
            await image.close()

    logging.info(f"Teacher {person.name!r} added by {admin or 'anonymous'}.")
    return {"message": "Teacher added successfully!", "teacher": person_out(request, person)}


@app.put("/api/update-teacher/{name:path}", response_model=schemas.MessageResponse)
async def update_teacher(
    name: str,
    changes: schemas.PersonUpdate,
    admin: Optional[str] = Depends(security.require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        await directory.update(db, name, changes)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error updating teacher: {e}", exc_info=True)
        raise Internal("Failed to update teacher.")
    return {"message": "Teacher updated successfully."}


@app.delete("/api/delete-teacher/{name:path}", response_model=schemas.MessageResponse)
async def delete_teacher(
    name: str,
    admin: Optional[str] = Depends(security.require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        await directory.delete(db, name)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error deleting teacher: {e}", exc_info=True)
        raise Internal("Failed to delete teacher.")
    return {"message": "Teacher deleted successfully."}


# --- Password Endpoints ---
@app.post("/api/set-password", response_model=schemas.MessageResponse)
async def set_password(
    body: schemas.CredentialIn,
    admin: Optional[str] = Depends(security.allow_bootstrap_or_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        created = await security.set_password(db, body.username, body.password)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"[set-password] Error: {e}", exc_info=True)
        raise Internal("Failed to set password.")
    if created:
        return JSONResponse(status_code=201, content={"message": "Password set successfully."})
    return {"message": "Password updated successfully."}


@app.post("/api/verify-password", response_model=schemas.TokenResponse)
async def verify_password(body: schemas.CredentialIn, db: AsyncSession = Depends(get_db)):
    try:
        token = await security.verify(db, body.username, body.password)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error verifying password: {e}", exc_info=True)
        raise Internal("Failed to verify password.")
    return {
        "message": "Password verified successfully.",
        "token": token,
        "tokenType": "bearer",
        "expiresIn": settings.token_ttl_minutes * 60,
    }


@app.put("/api/change-password", response_model=schemas.MessageResponse)
async def change_password(body: schemas.PasswordChange, db: AsyncSession = Depends(get_db)):
    try:
        await security.change_password(db, body.username, body.oldPassword, body.newPassword)
    except DirectoryError:
        raise
    except Exception as e:
        logging.error(f"Error changing password: {e}", exc_info=True)
        raise Internal("Failed to change password.")
    return {"message": "Password changed successfully."}


def run():
    import uvicorn

    uvicorn.run("teacher_directory.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
