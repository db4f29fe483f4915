import pytest


@pytest.fixture(autouse=True)
def _test_s3_endpoint(settings, monkeypatch):
    # Moto works best with the default AWS endpoints.
    settings.AWS_S3_ENDPOINT_URL = None
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
