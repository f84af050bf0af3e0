"""
Router for note endpoints (CRUD, flags, trash, search)
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from uuid import UUID
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.dependencies.entitlements import get_entitlement_gate, enforce_entitlement
from app.models.note import Note
from app.models.folder import Folder, NoteFolder
from app.schemas.note import NoteCreate, NoteUpdate, NoteFlagUpdate, NoteResponse
from app.services.entitlement_gate import EntitlementGate
from app.services.quota_policy import ResourceKind

logger = logging.getLogger(__name__)
router = APIRouter()


def get_owned_note(db: Session, user_id: UUID, note_id: UUID) -> Note:
    note = db.query(Note).filter(
        Note.id == note_id,
        Note.user_id == user_id
    ).first()

    if not note:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Note not found"
        )
    return note


@router.get("/notes", response_model=List[NoteResponse])
async def list_notes(
    favorite: bool = Query(False),
    archived: bool = Query(False),
    trashed: bool = Query(False),
    folder_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """
    Lists the user's notes, newest first.

    Query params:
    - favorite: only favorite notes
    - archived: only archived notes (otherwise archived notes are hidden, except in trash)
    - trashed: only trashed notes (otherwise trashed notes are hidden)
    - folder_id: only notes in this folder
    """
    try:
        query = db.query(Note).filter(Note.user_id == user_id)

        if favorite:
            query = query.filter(Note.is_favorite.is_(True))

        if archived:
            query = query.filter(Note.is_archived.is_(True))
        elif not trashed:
            query = query.filter(Note.is_archived.is_(False))

        query = query.filter(Note.is_trashed.is_(trashed))

        if folder_id:
            query = query.join(NoteFolder, NoteFolder.note_id == Note.id).filter(
                NoteFolder.folder_id == folder_id
            )

        notes = query.order_by(Note.updated_at.desc()).all()
        return [NoteResponse.model_validate(note) for note in notes]

    except Exception as e:
        logger.error(f"Error listing notes: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error listing notes"
        )


@router.get("/notes/search", response_model=List[NoteResponse])
async def search_notes(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """
    Case-insensitive search over title and content of non-trashed notes.
    """
    try:
        pattern = f"%{q.strip()}%"
        notes = db.query(Note).filter(
            Note.user_id == user_id,
            Note.is_trashed.is_(False),
            or_(Note.title.ilike(pattern), Note.content.ilike(pattern))
        ).order_by(Note.updated_at.desc()).limit(limit).all()

        logger.info(f"Search returned {len(notes)} notes for user {user_id}")
        return [NoteResponse.model_validate(note) for note in notes]

    except Exception as e:
        logger.error(f"Error searching notes: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error searching notes"
        )


@router.post("/notes", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    data: NoteCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    gate: EntitlementGate = Depends(get_entitlement_gate)
):
    """
    Creates a note after the plan quota check. Optionally files it in a folder.
    """
    enforce_entitlement(gate, user_id, ResourceKind.NOTE)

    try:
        folder = None
        if data.folder_id:
            folder = db.query(Folder).filter(
                Folder.id == data.folder_id,
                Folder.user_id == user_id
            ).first()
            if not folder:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Folder not found"
                )

        note = Note(
            user_id=user_id,
            title=data.title or "Untitled Note",
            content=data.content,
            color=data.color,
            tags=data.tags,
        )
        db.add(note)
        db.flush()

        if folder:
            db.add(NoteFolder(note_id=note.id, folder_id=folder.id))

        db.commit()
        db.refresh(note)

        logger.info(f"Note created: {note.id} for user {user_id}")
        return NoteResponse.model_validate(note)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating note: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating note"
        )


@router.delete("/notes/trash")
async def empty_trash(
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """Permanently deletes every trashed note of the user."""
    try:
        notes = db.query(Note).filter(
            Note.user_id == user_id,
            Note.is_trashed.is_(True)
        ).all()
        for note in notes:
            db.delete(note)
        db.commit()

        logger.info(f"Trash emptied for user {user_id}: {len(notes)} notes deleted")
        return {"success": True, "deleted_count": len(notes)}

    except Exception as e:
        logger.error(f"Error emptying trash: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error emptying trash"
        )


@router.get("/notes/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    note = get_owned_note(db, user_id, note_id)
    return NoteResponse.model_validate(note)


@router.patch("/notes/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: UUID,
    data: NoteUpdate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    note = get_owned_note(db, user_id, note_id)

    try:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(note, field, value)
        note.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(note)
        return NoteResponse.model_validate(note)

    except Exception as e:
        logger.error(f"Error updating note {note_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating note"
        )


def _set_flag(db: Session, note: Note, field: str, value: bool) -> Note:
    try:
        setattr(note, field, value)
        db.commit()
        db.refresh(note)
        return note
    except Exception as e:
        logger.error(f"Error setting {field} on note {note.id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating note"
        )


@router.post("/notes/{note_id}/favorite", response_model=NoteResponse)
async def set_favorite(
    note_id: UUID,
    data: NoteFlagUpdate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    note = get_owned_note(db, user_id, note_id)
    return NoteResponse.model_validate(_set_flag(db, note, "is_favorite", data.value))


@router.post("/notes/{note_id}/archive", response_model=NoteResponse)
async def set_archived(
    note_id: UUID,
    data: NoteFlagUpdate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    note = get_owned_note(db, user_id, note_id)
    return NoteResponse.model_validate(_set_flag(db, note, "is_archived", data.value))


@router.post("/notes/{note_id}/trash", response_model=NoteResponse)
async def trash_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """
    Moves a note to trash. Favorite/archived flags are kept for restore.
    """
    note = get_owned_note(db, user_id, note_id)

    try:
        note.is_trashed = True
        note.trashed_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(note)
        logger.info(f"Note trashed: {note_id} for user {user_id}")
        return NoteResponse.model_validate(note)

    except Exception as e:
        logger.error(f"Error trashing note {note_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error trashing note"
        )


@router.post("/notes/{note_id}/restore", response_model=NoteResponse)
async def restore_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    gate: EntitlementGate = Depends(get_entitlement_gate)
):
    """
    Restores a trashed note. A restored note counts as active again,
    so the note quota is checked first.
    """
    note = get_owned_note(db, user_id, note_id)
    if not note.is_trashed:
        return NoteResponse.model_validate(note)

    enforce_entitlement(gate, user_id, ResourceKind.NOTE)

    try:
        note.is_trashed = False
        note.trashed_at = None
        db.commit()
        db.refresh(note)
        logger.info(f"Note restored: {note_id} for user {user_id}")
        return NoteResponse.model_validate(note)

    except Exception as e:
        logger.error(f"Error restoring note {note_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error restoring note"
        )


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """Deletes a note permanently."""
    note = get_owned_note(db, user_id, note_id)

    try:
        db.delete(note)
        db.commit()
        logger.info(f"Note deleted: {note_id} for user {user_id}")

    except Exception as e:
        logger.error(f"Error deleting note {note_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting note"
        )
