from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional
import uuid

from .utils import drop_none, now_iso


class Role(str, Enum):
    ORGANIZER = "organizer"
    PARTICIPANT = "participant"
    ADMIN = "admin"


class EventStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class RegistrationStatus(str, Enum):
    ACTIVE = "active"
    CANCELED = "canceled"


ROLES = {r.value for r in Role}


# ---------- Users ----------
@dataclass
class User:
    id: str
    name: str
    email: str
    password: str             # bcrypt hash, never returned to clients
    phone: Optional[str]
    role: str
    profile_image_url: Optional[str]
    created_at: str
    is_active: bool = True
    email_confirmed: bool = False
    email_confirmation_token: Optional[str] = None
    updated_at: Optional[str] = None

    @staticmethod
    def new(name: str, email: str, password_hash: str, phone: Optional[str],
            role: str, profile_image_url: Optional[str]) -> "User":
        return User(
            id=str(uuid.uuid4()),
            name=name,
            email=email,
            password=password_hash,
            phone=phone,
            role=role,
            profile_image_url=profile_image_url,
            created_at=now_iso(),
            email_confirmation_token=str(uuid.uuid4()),
        )

    def to_item(self) -> dict:
        return drop_none(asdict(self))

    @staticmethod
    def public(item: dict) -> dict:
        # What you return to clients
        d = dict(item)
        d.pop("password", None)
        d.pop("email_confirmation_token", None)
        return d


# ---------- Events ----------
@dataclass
class Event:
    id: str
    name: str
    description: str
    date: str                 # ISO timestamp string
    image_url: str
    organizer_id: str
    status: str
    created_at: str
    updated_at: Optional[str] = None

    @staticmethod
    def new(name: str, description: str, date: str, image_url: str,
            organizer_id: str) -> "Event":
        return Event(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            date=str(date),
            image_url=image_url,
            organizer_id=organizer_id,
            status=EventStatus.ACTIVE.value,
            created_at=now_iso(),
        )

    def to_item(self) -> dict:
        return drop_none(asdict(self))


# ---------- Registrations ----------
@dataclass
class Registration:
    id: str
    participant_id: str
    event_id: str
    status: str
    created_at: str
    updated_at: Optional[str] = None

    @staticmethod
    def new(participant_id: str, event_id: str) -> "Registration":
        return Registration(
            id=str(uuid.uuid4()),
            participant_id=participant_id,
            event_id=event_id,
            status=RegistrationStatus.ACTIVE.value,
            created_at=now_iso(),
        )

    def to_item(self) -> dict:
        return drop_none(asdict(self))
