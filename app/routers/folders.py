"""
Router for folder endpoints and note/folder membership
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from uuid import UUID
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.dependencies.entitlements import get_entitlement_gate, enforce_entitlement
from app.models.folder import Folder, NoteFolder
from app.models.note import Note
from app.routers.notes import get_owned_note
from app.schemas.folder import FolderCreate, FolderUpdate, FolderResponse
from app.schemas.note import NoteResponse
from app.services.entitlement_gate import EntitlementGate
from app.services.quota_policy import ResourceKind

logger = logging.getLogger(__name__)
router = APIRouter()


def get_owned_folder(db: Session, user_id: UUID, folder_id: UUID) -> Folder:
    folder = db.query(Folder).filter(
        Folder.id == folder_id,
        Folder.user_id == user_id
    ).first()

    if not folder:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Folder not found"
        )
    return folder


@router.get("/folders", response_model=List[FolderResponse])
async def list_folders(
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    folders = db.query(Folder).filter(Folder.user_id == user_id).order_by(Folder.name).all()
    return [FolderResponse.model_validate(folder) for folder in folders]


@router.post("/folders", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    data: FolderCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    gate: EntitlementGate = Depends(get_entitlement_gate)
):
    """
    Creates a folder after the plan quota check.

    Body:
    {
        "name": "Work"
    }
    """
    enforce_entitlement(gate, user_id, ResourceKind.FOLDER)

    try:
        folder = Folder(user_id=user_id, name=data.name.strip())
        db.add(folder)
        db.commit()
        db.refresh(folder)

        logger.info(f"Folder created: {folder.id} for user {user_id}")
        return FolderResponse.model_validate(folder)

    except Exception as e:
        logger.error(f"Error creating folder: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating folder"
        )


@router.patch("/folders/{folder_id}", response_model=FolderResponse)
async def rename_folder(
    folder_id: UUID,
    data: FolderUpdate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    folder = get_owned_folder(db, user_id, folder_id)

    try:
        folder.name = data.name.strip()
        db.commit()
        db.refresh(folder)
        return FolderResponse.model_validate(folder)

    except Exception as e:
        logger.error(f"Error renaming folder {folder_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error renaming folder"
        )


@router.delete("/folders/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(
    folder_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """
    Deletes a folder permanently. Its notes are kept, only the links go.
    """
    folder = get_owned_folder(db, user_id, folder_id)

    try:
        db.delete(folder)
        db.commit()
        logger.info(f"Folder deleted: {folder_id} for user {user_id}")

    except Exception as e:
        logger.error(f"Error deleting folder {folder_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting folder"
        )


@router.get("/folders/{folder_id}/notes", response_model=List[NoteResponse])
async def list_folder_notes(
    folder_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    get_owned_folder(db, user_id, folder_id)

    notes = db.query(Note).join(NoteFolder, NoteFolder.note_id == Note.id).filter(
        NoteFolder.folder_id == folder_id,
        Note.user_id == user_id,
        Note.is_trashed.is_(False)
    ).order_by(Note.updated_at.desc()).all()

    return [NoteResponse.model_validate(note) for note in notes]


@router.put("/folders/{folder_id}/notes/{note_id}")
async def add_note_to_folder(
    folder_id: UUID,
    note_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """Files a note in a folder (no-op if already there)."""
    folder = get_owned_folder(db, user_id, folder_id)
    note = get_owned_note(db, user_id, note_id)

    try:
        link = db.query(NoteFolder).filter(
            NoteFolder.note_id == note.id,
            NoteFolder.folder_id == folder.id
        ).first()

        if not link:
            db.add(NoteFolder(note_id=note.id, folder_id=folder.id))
            db.commit()

        return {"success": True, "note_id": str(note.id), "folder_id": str(folder.id)}

    except Exception as e:
        logger.error(f"Error adding note {note_id} to folder {folder_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error adding note to folder"
        )


@router.delete("/folders/{folder_id}/notes/{note_id}")
async def remove_note_from_folder(
    folder_id: UUID,
    note_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    get_owned_folder(db, user_id, folder_id)

    try:
        removed = db.query(NoteFolder).filter(
            NoteFolder.note_id == note_id,
            NoteFolder.folder_id == folder_id
        ).delete(synchronize_session=False)
        db.commit()

        return {"success": True, "removed": bool(removed)}

    except Exception as e:
        logger.error(f"Error removing note {note_id} from folder {folder_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error removing note from folder"
        )
