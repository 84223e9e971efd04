import pytest

from eventhub.access import check_email_confirmed, check_roles, check_self_or_admin
from eventhub.errors import ForbiddenError
from eventhub.security import Principal

ADMIN = Principal("a-1", "admin@example.com", "admin", True)
ORGANIZER = Principal("o-1", "org@example.com", "organizer", True)


def test_roles_open_when_no_roles_required():
    check_roles(None, None)
    check_roles(None, [])
    check_roles(ORGANIZER, ())


def test_roles_match():
    check_roles(ORGANIZER, ["admin", "organizer"])


def test_roles_mismatch():
    with pytest.raises(ForbiddenError, match="role"):
        check_roles(ORGANIZER, ["admin"])


def test_roles_without_principal():
    with pytest.raises(ForbiddenError, match="not authenticated"):
        check_roles(None, ["admin"])


def test_self_or_admin():
    check_self_or_admin(ORGANIZER, "o-1")
    check_self_or_admin(ADMIN, "o-1")
    with pytest.raises(ForbiddenError):
        check_self_or_admin(ORGANIZER, "someone-else")
    with pytest.raises(ForbiddenError):
        check_self_or_admin(None, "o-1")


def test_email_confirmed_reads_stored_user(users, make_user):
    confirmed = make_user()
    pending = make_user(confirmed=False)

    check_email_confirmed(Principal(confirmed["id"], confirmed["email"], "participant"), users)
    # a stale claim does not help an unconfirmed user
    with pytest.raises(ForbiddenError, match="Email not confirmed"):
        check_email_confirmed(Principal(pending["id"], pending["email"], "participant", True), users)


def test_email_confirmed_unknown_user(users):
    with pytest.raises(ForbiddenError):
        check_email_confirmed(Principal("ghost", "ghost@example.com", "participant", True), users)
    with pytest.raises(ForbiddenError):
        check_email_confirmed(None, users)
