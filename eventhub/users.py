"""
User directory: sign-up, profile updates, listing, soft delete and the
email-confirmation workflow, backed by the users table.
"""
import logging
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from .db import CONFIRMATION_TOKEN_INDEX, EMAIL_INDEX, scan_all
from .errors import ConflictError, ForbiddenError, NotFoundError, ServerError, ValidationError
from .models import User
from .security import Principal, hash_password
from .storage import ImageFile
from .utils import drop_none, now_iso, paginate

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "email", "password", "phone", "role")


class UserDirectory:

    def __init__(self, table, storage, mailer):
        self.table = table
        self.storage = storage
        self.mailer = mailer

    def _get(self, user_id: str) -> Optional[dict]:
        return self.table.get_item(Key={"id": user_id}).get("Item")

    def _ordered(self, items: List[dict]) -> List[dict]:
        # scan order is hash order; creation order keeps pages stable
        return sorted(items, key=lambda u: u.get("created_at", ""))

    def create(self, image: Optional[ImageFile], data: Dict[str, Any]) -> dict:
        """
        Sign up a new user and send the confirmation email.

        Returns the stored item, password hash included; callers strip it
        with `User.public` before exposing it.
        """
        if not image:
            raise ValidationError("Profile image is mandatory")
        if self.find_by_email(data["email"]):
            raise ConflictError("Email already exists")
        if not self.storage:
            raise ServerError("Image storage not configured")

        password_hash = hash_password(data["password"])
        profile_image_url = self.storage.upload_image(image)

        user = User.new(
            name=data["name"],
            email=data["email"],
            password_hash=password_hash,
            phone=data.get("phone"),
            role=data["role"],
            profile_image_url=profile_image_url,
        )
        item = user.to_item()
        self.table.put_item(Item=item)
        logger.info("Created user %s (%s)", user.id, user.role)

        self.mailer.send_confirmation_email(user.email, user.email_confirmation_token)
        return item

    def create_without_image(self, data: Dict[str, Any], email_confirmed: bool = False) -> dict:
        """Bootstrap path for seeded accounts: no picture, no confirmation email."""
        if self.find_by_email(data["email"]):
            raise ConflictError("Email already exists")

        user = User.new(
            name=data["name"],
            email=data["email"],
            password_hash=hash_password(data["password"]),
            phone=data.get("phone"),
            role=data["role"],
            profile_image_url=None,
        )
        if email_confirmed:
            user.email_confirmed = True
            user.email_confirmation_token = None
        item = user.to_item()
        self.table.put_item(Item=item)
        logger.info("Created user %s (%s) without image", user.id, user.role)
        return item

    def update(self, data: Dict[str, Any], user_id: str) -> dict:
        patch = drop_none({k: data.get(k) for k in UPDATABLE_FIELDS})
        if not patch:
            raise ValidationError("Request body is empty")

        existing = self._get(user_id)
        if not existing:
            raise NotFoundError("User not found")

        if "email" in patch and patch["email"] != existing["email"]:
            owner = self.find_by_email(patch["email"])
            if owner and owner["id"] != user_id:
                raise ConflictError("Email already exists")

        if isinstance(patch.get("password"), str):
            patch["password"] = hash_password(patch["password"])

        updated = {**existing, **patch, "updated_at": now_iso()}
        self.table.put_item(Item=updated)
        logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(patch)))
        return User.public(updated)

    def find_all(self, name: Optional[str] = None, email: Optional[str] = None,
                 role: Optional[str] = None, page: Optional[int] = None,
                 limit: Optional[int] = None) -> dict:
        """Filter by name/email substring (case-insensitive) and exact role, then paginate."""
        users = self._ordered(scan_all(self.table))

        def matches(user: dict) -> bool:
            if name and name.lower() not in user.get("name", "").lower():
                return False
            if email and email.lower() not in user.get("email", "").lower():
                return False
            if role and user.get("role") != role:
                return False
            return True

        result = paginate([u for u in users if matches(u)], page, limit)
        result["data"] = [User.public(u) for u in result["data"]]
        return result

    def find_by_id(self, user_id: str) -> dict:
        try:
            user = self._get(user_id)
        except (ClientError, BotoCoreError):
            logger.exception("Failed to fetch user %s", user_id)
            raise ServerError("Failed to fetch user")
        if not user:
            raise NotFoundError("User not found")
        return User.public(user)

    def soft_delete(self, user_id: str, requester: Principal) -> dict:
        user = self._get(user_id)
        if not user:
            raise NotFoundError("User not found")

        if requester.role != "admin" and requester.user_id != user_id:
            raise ForbiddenError("You do not have permission to delete this user")

        updated = {**user, "is_active": False, "updated_at": now_iso()}
        self.table.put_item(Item=updated)
        logger.info("Deactivated user %s", user_id)

        if updated.get("email"):
            self.mailer.send_account_deactivated(updated["email"], updated.get("name"))
        return User.public(updated)

    def find_by_email(self, email: str) -> Optional[dict]:
        response = self.table.query(
            IndexName=EMAIL_INDEX,
            KeyConditionExpression=Key("email").eq(email),
        )
        items = response.get("Items", [])
        return items[0] if items else None

    def find_by_confirmation_token(self, token: str) -> Optional[dict]:
        response = self.table.query(
            IndexName=CONFIRMATION_TOKEN_INDEX,
            KeyConditionExpression=Key("email_confirmation_token").eq(token),
        )
        items = response.get("Items", [])
        return items[0] if items else None

    def confirm_email(self, user_id: str) -> dict:
        user = self._get(user_id)
        if not user:
            raise NotFoundError("User not found")

        user["email_confirmed"] = True
        user.pop("email_confirmation_token", None)
        user["updated_at"] = now_iso()
        self.table.put_item(Item=user)
        logger.info("Confirmed email for user %s", user_id)
        return User.public(user)

    def find_all_participants(self) -> List[dict]:
        """Active users with a confirmed email: the notification audience."""
        users = scan_all(self.table)
        return [User.public(u) for u in self._ordered(users)
                if u.get("is_active") and u.get("email_confirmed")]
