from eventhub import config
from eventhub.storage import ImageFile, build_storage_from_env

from .helpers import BUCKET


def test_upload_image(storage, s3_client, image):
    url = storage.upload_image(image)

    prefix = f"https://{BUCKET}.s3.us-east-1.amazonaws.com/"
    assert url.startswith(prefix + "profiles/")
    key = url[len(prefix):]
    obj = s3_client.get_object(Bucket=BUCKET, Key=key)
    assert obj["Body"].read() == image.body
    assert obj["ContentType"] == "image/png"


def test_upload_event_image_without_extension(storage, s3_client):
    url = storage.upload_image(ImageFile("cover", b"data"), "events")
    key = url.split(".amazonaws.com/", 1)[1]
    assert key.startswith("events/")
    assert "." not in key
    assert s3_client.get_object(Bucket=BUCKET, Key=key)["Body"].read() == b"data"


def test_build_storage_requires_bucket(monkeypatch):
    monkeypatch.setattr(config, "AWS_S3_BUCKET_NAME", None)
    assert build_storage_from_env() is None
