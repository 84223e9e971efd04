"""
Login and email confirmation on top of the user directory.
"""
import logging

from .errors import NotFoundError, UnauthorizedError, ValidationError
from .security import create_token, verify_password

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(self, users):
        self.users = users

    def login(self, email: str, password: str) -> dict:
        user = self.users.find_by_email(email)
        if not user or not user.get("is_active"):
            raise UnauthorizedError("Invalid credentials")

        if not verify_password(password, user.get("password", "")):
            raise UnauthorizedError("Invalid credentials")

        logger.info("User %s logged in", user["id"])
        return {"access_token": create_token(user)}

    def confirm_email(self, token: str) -> dict:
        if not token:
            raise ValidationError("Token is required")

        user = self.users.find_by_confirmation_token(token)
        if not user:
            raise NotFoundError("Invalid or expired token")

        self.users.confirm_email(user["id"])
        return {"message": "Email successfully confirmed"}
