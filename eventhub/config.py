import os

# AWS
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")

# DynamoDB tables
USERS_TABLE_NAME = os.environ.get("USERS_TABLE_NAME", "users")
EVENTS_TABLE_NAME = os.environ.get("EVENTS_TABLE_NAME", "events")
REGISTRATIONS_TABLE_NAME = os.environ.get("REGISTRATIONS_TABLE_NAME", "registrations")

# S3 bucket for profile and event images
AWS_S3_BUCKET_NAME = os.environ.get("AWS_S3_BUCKET_NAME")

# SES
AWS_SES_REGION = os.environ.get("AWS_SES_REGION") or AWS_REGION
EMAIL_FROM = os.environ.get("EMAIL_FROM")

# Links embedded in outgoing emails
FRONTEND_URL = os.environ.get("FRONTEND_URL")
APP_URL = os.environ.get("APP_URL", "http://localhost:8080")

# JWT
JWT_SECRET = os.environ.get("JWT_SECRET")
JWT_EXPIRES_MINUTES = int(os.environ.get("JWT_EXPIRES_MINUTES", "60"))

# bcrypt cost factor
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Default admin created by `python -m eventhub.seed`
DEFAULT_USER_NAME = os.environ.get("DEFAULT_USER_NAME")
DEFAULT_USER_EMAIL = os.environ.get("DEFAULT_USER_EMAIL")
DEFAULT_USER_PASSWORD = os.environ.get("DEFAULT_USER_PASSWORD")
DEFAULT_USER_PHONE = os.environ.get("DEFAULT_USER_PHONE", "")
