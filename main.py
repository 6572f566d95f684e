"""
Baptism Gallery API Server
FastAPI backend for event galleries, media uploads with AI metadata, and AI-assisted photo search.
"""
import asyncio
import logging
from datetime import date, datetime
from io import BytesIO
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from sqlalchemy import func as sa_func, or_
from sqlalchemy.orm import Session

import functions
from analysis.metadata import MetadataGenerator
from auth import create_access_token, get_current_user, hash_password, require_admin, verify_password
from config import missing_settings, settings
from database import Base, SessionLocal, engine, get_db, get_session_factory
from dependencies import get_metadata_generator, get_storage_client
from errors import ConfigurationError, InvalidUploadError, StorageError
from minio_client import (
    bucket_for,
    build_object_name,
    ensure_bucket_exists,
    get_minio_client,
    object_name_from_url,
    open_media,
    public_url,
    put_media,
    remove_media,
)
from models import Event, MediaRecord, User
from schemas import EventOut, EventSummary, EventUpdate, LoginRequest, media_to_dict
from search.keyword import filter_media
from search.router import router as search_router
from uploads.orchestrator import COMPLETE, ERROR, UploadItem, UploadOrchestrator, classify_upload

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Baptism Gallery API",
    description="Photo/video gallery for baptism events with AI-assisted search",
    version="1.0.0"
)

# Browser clients call from any origin with these headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(functions.router)
app.include_router(search_router)


@app.on_event("startup")
async def startup_event():
    """Validate configuration, create tables and buckets, seed the admin user"""
    missing = missing_settings(settings)
    if missing:
        logger.error(f"Missing required settings: {', '.join(missing)}")
        if settings.FAIL_FAST_CONFIG:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    Base.metadata.create_all(bind=engine)

    minio_client = get_minio_client()
    for bucket in (settings.PHOTO_BUCKET, settings.VIDEO_BUCKET):
        ensure_bucket_exists(minio_client, bucket)

    if settings.ADMIN_USERNAME and settings.ADMIN_PASSWORD:
        db = SessionLocal()
        try:
            if db.query(User).count() == 0:
                db.add(User(
                    username=settings.ADMIN_USERNAME,
                    password_hash=hash_password(settings.ADMIN_PASSWORD),
                    display_name=settings.ADMIN_USERNAME,
                    role="admin",
                    is_active=True,
                    created_at=datetime.utcnow(),
                ))
                db.commit()
                logger.info(f"Seeded admin user: {settings.ADMIN_USERNAME}")
        finally:
            db.close()

    logger.info("Baptism Gallery API Server started successfully")


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "service": "Baptism Gallery API",
        "version": "1.0.0",
        "status": "operational"
    }


@app.get("/health")
async def health_check():
    """Detailed health check"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "ai_configured": bool(settings.AI_GATEWAY_API_KEY),
    }


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@app.post("/auth/login")
async def login(body: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == body.username).first()
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid username or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is disabled")

    user.last_login_at = datetime.utcnow()
    db.commit()

    token = create_access_token({"sub": user.username})
    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        samesite="lax",
        max_age=8 * 3600,
    )
    return {"username": user.username, "display_name": user.display_name, "role": user.role}


@app.post("/auth/logout")
async def logout(response: Response):
    response.delete_cookie("access_token")
    return {"status": "success"}


@app.get("/auth/me")
async def get_me(user: User = Depends(get_current_user)):
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "role": user.role,
    }


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

# NOT NULL columns; an update may omit them but never clear them
REQUIRED_EVENT_FIELDS = ("title", "event_date")


def _get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@app.get("/events")
async def list_events(
    q: Optional[str] = Query(None, description="Filter by title or description"),
    db: Session = Depends(get_db),
):
    """Events newest first, with photo/video counts."""
    query = db.query(Event)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(Event.title.ilike(pattern), Event.description.ilike(pattern)))
    events = query.order_by(Event.event_date.desc()).all()

    counts: dict[tuple[str, str], int] = {}
    rows = (
        db.query(MediaRecord.event_id, MediaRecord.media_type, sa_func.count())
        .filter(MediaRecord.event_id.isnot(None))
        .group_by(MediaRecord.event_id, MediaRecord.media_type)
        .all()
    )
    for event_id, media_type, cnt in rows:
        counts[(event_id, media_type)] = cnt

    return [
        EventSummary(
            **EventOut.model_validate(e).model_dump(),
            photo_count=counts.get((e.id, "photo"), 0),
            video_count=counts.get((e.id, "video"), 0),
        ).model_dump(mode="json")
        for e in events
    ]


@app.post("/events")
async def create_event(
    title: str = Form(...),
    event_date: date = Form(...),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    storage=Depends(get_storage_client),
):
    """Admin creates an event, optionally uploading a thumbnail image."""
    if not title.strip():
        raise HTTPException(status_code=400, detail="Title is required")

    thumbnail_url = None
    if thumbnail is not None and thumbnail.filename:
        data = await thumbnail.read()
        object_name = build_object_name("event-thumbnails", thumbnail.filename)
        try:
            await asyncio.to_thread(
                put_media, storage, settings.PHOTO_BUCKET, object_name,
                BytesIO(data), len(data), thumbnail.content_type or "image/jpeg",
            )
        except StorageError as e:
            raise HTTPException(status_code=500, detail=str(e))
        thumbnail_url = public_url(settings.PHOTO_BUCKET, object_name)

    event = Event(
        title=title.strip(),
        description=description or None,
        event_date=event_date,
        location=location or None,
        thumbnail_url=thumbnail_url,
        created_at=datetime.utcnow(),
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info(f"Event created by {admin.username}: {event.id}")
    return EventOut.model_validate(event).model_dump(mode="json")


@app.get("/events/{event_id}")
async def get_event(event_id: str, db: Session = Depends(get_db)):
    return EventOut.model_validate(_get_event_or_404(db, event_id)).model_dump(mode="json")


@app.put("/events/{event_id}")
async def update_event(
    event_id: str,
    body: EventUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    event = _get_event_or_404(db, event_id)
    changes = body.model_dump(exclude_unset=True)
    for field in REQUIRED_EVENT_FIELDS:
        if field in changes and changes[field] is None:
            raise HTTPException(status_code=422, detail=f"{field} cannot be null")
    for field, value in changes.items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    return EventOut.model_validate(event).model_dump(mode="json")


@app.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Admin deletes an event and its media rows."""
    event = _get_event_or_404(db, event_id)
    db.delete(event)
    db.commit()
    logger.info(f"Event {event_id} deleted by {admin.username}")
    return {"status": "success", "message": "Event deleted", "event_id": event_id}


@app.get("/events/{event_id}/media")
async def list_event_media(event_id: str, db: Session = Depends(get_db)):
    _get_event_or_404(db, event_id)
    media = (
        db.query(MediaRecord)
        .filter(MediaRecord.event_id == event_id)
        .order_by(MediaRecord.order_index.asc())
        .all()
    )
    return [media_to_dict(m) for m in media]


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

def _get_media_or_404(db: Session, media_id: str) -> MediaRecord:
    media = db.query(MediaRecord).filter(MediaRecord.id == media_id).first()
    if not media:
        raise HTTPException(status_code=404, detail="Media not found")
    return media


@app.get("/media")
async def list_media(
    q: Optional[str] = Query(None),
    media_type: Optional[str] = Query(None, pattern="^(photo|video)$"),
    db: Session = Depends(get_db),
):
    """All media, newest upload first."""
    query = db.query(MediaRecord)
    if media_type:
        query = query.filter(MediaRecord.media_type == media_type)
    media = filter_media(query.order_by(MediaRecord.uploaded_at.desc()).all(), q or "")
    return [media_to_dict(m) for m in media]


@app.get("/media/{media_id}")
async def get_media(media_id: str, db: Session = Depends(get_db)):
    return media_to_dict(_get_media_or_404(db, media_id))


@app.delete("/media/{media_id}")
async def delete_media(
    media_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    storage=Depends(get_storage_client),
):
    """Admin removes the stored object, then the record."""
    media = _get_media_or_404(db, media_id)
    try:
        await asyncio.to_thread(
            remove_media, storage, bucket_for(media.media_type), object_name_from_url(media.url)
        )
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))

    db.delete(media)
    db.commit()
    logger.info(f"Media {media_id} deleted by {admin.username}")
    return {"status": "success", "message": "Media deleted", "media_id": media_id}


@app.get("/media/{media_id}/download")
async def download_media(
    media_id: str,
    db: Session = Depends(get_db),
    storage=Depends(get_storage_client),
):
    """Stream the original file as an attachment."""
    media = _get_media_or_404(db, media_id)
    object_name = object_name_from_url(media.url)
    try:
        obj = await asyncio.to_thread(open_media, storage, bucket_for(media.media_type), object_name)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))

    def iter_object():
        try:
            yield from obj.stream(64 * 1024)
        finally:
            obj.close()
            obj.release_conn()

    filename = object_name.split("/")[-1] or "download"
    content_type = obj.headers.get("Content-Type") or "application/octet-stream"
    return StreamingResponse(
        iter_object(),
        media_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------

async def _collect_items(files: list[UploadFile]) -> tuple[list[UploadItem], list[dict]]:
    """Read uploaded files; unsupported or oversize ones are rejected up front."""
    items, rejected = [], []
    for f in files:
        try:
            # Spooled size is known before reading, so oversize files are never buffered
            if f.size is not None:
                classify_upload(f.filename, f.content_type, f.size, settings)
            data = await f.read()
            media_type = classify_upload(f.filename, f.content_type, len(data), settings)
        except InvalidUploadError as e:
            logger.warning(f"Upload rejected: {e}")
            rejected.append({"filename": f.filename, "error": str(e)})
            continue
        items.append(UploadItem(
            filename=f.filename or "upload",
            content_type=f.content_type,
            data=data,
            media_type=media_type,
        ))
    return items, rejected


def _upload_summary(items: list[UploadItem], rejected: list[dict], **extra) -> dict:
    return {
        **extra,
        "completed": sum(1 for i in items if i.status == COMPLETE),
        "failed": sum(1 for i in items if i.status == ERROR),
        "rejected": rejected,
        "items": [i.summary() for i in items],
    }


@app.post("/events/{event_id}/media")
async def upload_event_media(
    event_id: str,
    files: list[UploadFile] = File(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    storage=Depends(get_storage_client),
    generator: MetadataGenerator = Depends(get_metadata_generator),
    session_factory=Depends(get_session_factory),
):
    """Admin uploads photos/videos into an event; metadata is generated per item."""
    event = _get_event_or_404(db, event_id)
    items, rejected = await _collect_items(files)

    orchestrator = UploadOrchestrator(storage, generator, session_factory, settings)
    await orchestrator.run(items, event_id=event.id, event_date=event.event_date,
                           uploaded_by=admin.id)
    return _upload_summary(items, rejected, event_id=event.id)


@app.post("/upload")
async def upload_photos(
    files: list[UploadFile] = File(...),
    event_date: Optional[date] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None, description="Comma-separated; replaces AI tags"),
    admin: User = Depends(require_admin),
    storage=Depends(get_storage_client),
    generator: MetadataGenerator = Depends(get_metadata_generator),
    session_factory=Depends(get_session_factory),
):
    """Admin uploads media outside any event, with optional manual metadata."""
    items, rejected = await _collect_items(files)

    orchestrator = UploadOrchestrator(storage, generator, session_factory, settings)
    await orchestrator.run(
        items,
        manual_description=description or None,
        manual_tags=tags,
        event_date=event_date,
        uploaded_by=admin.id,
    )
    return _upload_summary(items, rejected)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
