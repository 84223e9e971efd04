"""
Create the DynamoDB tables and a default admin account.

    python -m eventhub.seed

Reads DEFAULT_USER_NAME, DEFAULT_USER_EMAIL, DEFAULT_USER_PASSWORD and
DEFAULT_USER_PHONE. The admin is created with a confirmed email and no
profile picture.
"""
import logging
import sys

from . import config
from .db import build_dynamodb_resource, create_tables
from .mailer import Mailer
from .models import Role
from .users import UserDirectory

logger = logging.getLogger(__name__)


def seed_default_user(users: UserDirectory) -> bool:
    """Returns True if the admin was created, False if it already existed."""
    if not (config.DEFAULT_USER_NAME and config.DEFAULT_USER_EMAIL and config.DEFAULT_USER_PASSWORD):
        raise RuntimeError("Default user environment variables are not set")

    if users.find_by_email(config.DEFAULT_USER_EMAIL):
        logger.info("User with email %s already exists", config.DEFAULT_USER_EMAIL)
        return False

    users.create_without_image(
        {
            "name": config.DEFAULT_USER_NAME,
            "email": config.DEFAULT_USER_EMAIL,
            "password": config.DEFAULT_USER_PASSWORD,
            "phone": config.DEFAULT_USER_PHONE or None,
            "role": Role.ADMIN.value,
        },
        email_confirmed=True,
    )
    logger.info("Default user %s created", config.DEFAULT_USER_EMAIL)
    return True


def main() -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format="[%(levelname)s] %(asctime)s - %(message)s")
    tables = create_tables(build_dynamodb_resource())
    users = UserDirectory(tables["users"], storage=None, mailer=Mailer(None))
    try:
        seed_default_user(users)
    except RuntimeError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
