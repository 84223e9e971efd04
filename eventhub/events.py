"""
Event catalog: creation with a mandatory image, owner/admin edits, filtered
listing and soft delete, with email fan-out to the organizer and every
confirmed participant on create and delete.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from .db import EVENT_NAME_INDEX, scan_all
from .errors import AppError, ForbiddenError, NotFoundError, ServerError, ValidationError
from .models import Event, EventStatus
from .storage import ImageFile
from .utils import now_iso, paginate, parse_instant

logger = logging.getLogger(__name__)

DATE_BEFORE = "before"
DATE_AFTER = "after"
PATCHABLE_FIELDS = ("name", "description", "date")


class EventCatalog:

    def __init__(self, table, storage, mailer, users):
        self.table = table
        self.storage = storage
        self.mailer = mailer
        self.users = users

    def _get(self, event_id: str) -> Optional[dict]:
        return self.table.get_item(Key={"id": event_id}).get("Item")

    def _recipients(self, organizer_id: str) -> List[str]:
        """Organizer first, then every confirmed participant, without repeats."""
        emails = []
        try:
            emails.append(self.users.find_by_id(organizer_id)["email"])
        except NotFoundError:
            logger.warning("Organizer %s not found, not notified", organizer_id)
        for participant in self.users.find_all_participants():
            if participant.get("email") and participant["email"] not in emails:
                emails.append(participant["email"])
        return emails

    def _fan_out(self, event: dict, send: Callable[[str, dict], Any]) -> None:
        for email in self._recipients(event["organizer_id"]):
            send(email, event)

    def create(self, data: Dict[str, Any], image: Optional[ImageFile], organizer_id: str) -> dict:
        if not image:
            raise ValidationError("Event image is mandatory")
        if self.check_if_event_name_exists(data["name"]):
            raise ValidationError("Event name already exists")
        if not self.storage:
            raise ServerError("Image storage not configured")

        image_url = self.storage.upload_image(image, "events")
        if not image_url:
            raise ServerError("Failed to upload image to S3")

        event = Event.new(
            name=data["name"],
            description=data.get("description", ""),
            date=data["date"],
            image_url=image_url,
            organizer_id=organizer_id,
        )
        item = event.to_item()
        self.table.put_item(Item=item)
        logger.info("Created event %s (%s) for organizer %s", event.id, event.name, organizer_id)

        self._fan_out(item, self.mailer.send_event_created)
        return item

    def update(self, event_id: str, data: Dict[str, Any], requester_id: str, is_admin: bool) -> dict:
        if not data or not any(data.get(k) for k in PATCHABLE_FIELDS + ("organizer_id",)):
            raise ValidationError("Request body cannot be empty")

        event = self._get(event_id)
        if not event:
            raise NotFoundError("Event not found")

        if event["organizer_id"] != requester_id and not is_admin:
            raise ForbiddenError("You cannot edit this event")

        if data.get("name") and data["name"] != event["name"]:
            if self.check_if_event_name_exists(data["name"]):
                raise ValidationError("Event name already exists")

        updated = dict(event)
        for field in PATCHABLE_FIELDS:
            if data.get(field):
                updated[field] = data[field]
        if is_admin and data.get("organizer_id"):
            updated["organizer_id"] = data["organizer_id"]
        updated["updated_at"] = now_iso()

        self.table.put_item(Item=updated)
        logger.info("Updated event %s", event_id)
        return updated

    def find_all(self, name: Optional[str] = None, date: Optional[str] = None,
                 date_direction: Optional[str] = None, status: Optional[str] = None,
                 page: Optional[int] = None, limit: Optional[int] = None) -> dict:
        """
        Filter events and paginate.

        Args:
            name: Case-insensitive substring of the event name
            date: Reference instant; events strictly before/after it match
            date_direction: "before" or "after" (default "after")
            status: Exact status match
            page, limit: 1-based pagination (defaults 1/10)
        """
        direction = date_direction or DATE_AFTER
        reference = parse_instant(date) if date else None
        events = sorted(scan_all(self.table), key=lambda e: e.get("created_at", ""))

        def matches(event: dict) -> bool:
            if name and name.lower() not in event.get("name", "").lower():
                return False
            if reference is not None:
                event_date = parse_instant(event["date"])
                if direction == DATE_BEFORE and not event_date < reference:
                    return False
                if direction != DATE_BEFORE and not event_date > reference:
                    return False
            if status and event.get("status") != status:
                return False
            return True

        return paginate([e for e in events if matches(e)], page, limit)

    def find_one(self, event_id: str) -> dict:
        try:
            event = self._get(event_id)
            if not event:
                raise NotFoundError("Event not found")
            return event
        except AppError:
            raise
        except (ClientError, BotoCoreError):
            logger.exception("Failed to fetch event %s", event_id)
            raise ServerError("Failed to fetch event")

    def soft_delete(self, event_id: str, user_id: str, user_role: str) -> dict:
        event = self._get(event_id)
        if not event:
            raise NotFoundError("Event not found")

        if user_role != "admin" and event["organizer_id"] != user_id:
            raise ForbiddenError("You do not have permission to delete this event")

        updated = {**event, "status": EventStatus.INACTIVE.value, "updated_at": now_iso()}
        self.table.put_item(Item=updated)
        logger.info("Deactivated event %s", event_id)

        self._fan_out(updated, self.mailer.send_event_canceled)
        return updated

    def check_if_event_name_exists(self, name: str) -> bool:
        response = self.table.query(
            IndexName=EVENT_NAME_INDEX,
            KeyConditionExpression=Key("name").eq(name),
            Select="COUNT",
        )
        return response.get("Count", 0) > 0
