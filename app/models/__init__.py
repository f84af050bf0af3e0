from app.database import Base
from app.models.user import User
from app.models.subscription import Subscription, Tier, SubscriptionStatus
from app.models.note import Note
from app.models.folder import Folder, NoteFolder

__all__ = [
    "Base",
    "User",
    "Subscription",
    "Tier",
    "SubscriptionStatus",
    "Note",
    "Folder",
    "NoteFolder",
]
