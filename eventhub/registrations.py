"""
Registration ledger: participants subscribe to active, upcoming events and
cancel their own subscriptions.
"""
import logging
from datetime import datetime, UTC
from typing import Any, Dict, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from .db import PARTICIPANT_EVENT_INDEX, query_all
from .errors import ForbiddenError, NotFoundError, ServerError, ValidationError
from .models import EventStatus, Registration, RegistrationStatus
from .utils import now_iso, paginate, parse_instant

logger = logging.getLogger(__name__)


class RegistrationLedger:

    def __init__(self, table, events, users, mailer):
        self.table = table
        self.events = events
        self.users = users
        self.mailer = mailer

    def create_registration(self, participant_id: str, data: Dict[str, Any]) -> dict:
        event_id = data["event_id"]
        event = self.events.find_one(event_id)

        if event.get("status") != EventStatus.ACTIVE.value:
            raise ValidationError("Event is not active")

        if parse_instant(event["date"]) < datetime.now(UTC):
            raise ValidationError("Event has already occurred")

        existing = self.check_existing_registration(participant_id, event_id)
        if existing and existing["status"] == RegistrationStatus.ACTIVE.value:
            raise ValidationError("Registration already exists")

        item = Registration.new(participant_id, event_id).to_item()
        try:
            self.table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(id)",
            )
        except (ClientError, BotoCoreError):
            logger.exception("Failed to create registration for %s on %s", participant_id, event_id)
            raise ServerError("Failed to create registration")
        logger.info("Participant %s registered for event %s (%s)", participant_id, event_id, item["id"])

        self._notify(participant_id, event, self.mailer.send_event_subscription)
        return item

    def list_registrations(self, participant_id: str, page: Optional[int] = None,
                           limit: Optional[int] = None) -> dict:
        page = 1 if page is None else page
        limit = 10 if limit is None else limit
        if page < 1 or limit < 1:
            raise ValidationError("Invalid page or limit")

        try:
            items = query_all(
                self.table,
                IndexName=PARTICIPANT_EVENT_INDEX,
                KeyConditionExpression=Key("participant_id").eq(participant_id),
            )
        except (ClientError, BotoCoreError):
            logger.exception("Error listing registrations for %s", participant_id)
            raise ServerError("Failed to list registrations")

        items.sort(key=lambda r: r.get("created_at", ""))
        return paginate(items, page, limit)

    def cancel_registration(self, registration_id: str, participant_id: str) -> dict:
        registration = self.table.get_item(Key={"id": registration_id}).get("Item")
        if not registration:
            raise NotFoundError("Registration not found")

        if registration["participant_id"] != participant_id:
            raise ForbiddenError("You cannot cancel this registration")

        if registration["status"] == RegistrationStatus.CANCELED.value:
            raise ValidationError("Registration is already canceled")

        updated = {
            **registration,
            "status": RegistrationStatus.CANCELED.value,
            "updated_at": now_iso(),
        }
        self.table.put_item(Item=updated)
        logger.info("Registration %s canceled", registration_id)

        try:
            event = self.events.find_one(registration["event_id"])
        except NotFoundError:
            logger.warning("Event %s not found, cancellation email skipped", registration["event_id"])
        else:
            self._notify(participant_id, event, self.mailer.send_subscription_canceled)
        return updated

    def check_existing_registration(self, participant_id: str, event_id: str) -> Optional[dict]:
        """Registration for the pair, preferring an active one; None if there is none."""
        items = query_all(
            self.table,
            IndexName=PARTICIPANT_EVENT_INDEX,
            KeyConditionExpression=Key("participant_id").eq(participant_id) & Key("event_id").eq(event_id),
        )
        for item in items:
            if item.get("status") == RegistrationStatus.ACTIVE.value:
                return item
        return items[0] if items else None

    def _notify(self, participant_id: str, event: dict, send) -> None:
        try:
            participant = self.users.find_by_id(participant_id)
        except NotFoundError:
            logger.warning("Participant %s not found, email skipped", participant_id)
            return
        if participant.get("email"):
            send(participant["email"], event)
