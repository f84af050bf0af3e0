from app.schemas.note import NoteCreate, NoteUpdate, NoteFlagUpdate, NoteResponse
from app.schemas.folder import FolderCreate, FolderUpdate, FolderResponse
from app.schemas.subscription import (
    QuotaSnapshotResponse,
    SubscriptionStatusResponse,
    ProvisionResponse,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
)

__all__ = [
    "NoteCreate",
    "NoteUpdate",
    "NoteFlagUpdate",
    "NoteResponse",
    "FolderCreate",
    "FolderUpdate",
    "FolderResponse",
    "QuotaSnapshotResponse",
    "SubscriptionStatusResponse",
    "ProvisionResponse",
    "CheckoutSessionRequest",
    "CheckoutSessionResponse",
]
