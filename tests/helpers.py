from datetime import datetime, timedelta, UTC

REGION = "us-east-1"
BUCKET = "test-images"
PASSWORD = "StrongP@ss123"


def future_date(days: int = 30) -> str:
    return (datetime.now(UTC) + timedelta(days=days)).isoformat()


def past_date(days: int = 30) -> str:
    return (datetime.now(UTC) - timedelta(days=days)).isoformat()
