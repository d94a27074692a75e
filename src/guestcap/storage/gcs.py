"""Google Cloud Storage backend."""

import threading
import time
from datetime import timedelta
from typing import Optional

from google.cloud import storage
from google.oauth2 import service_account
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from guestcap.core.config import settings
from guestcap.storage.base import StorageBackend

# Signing credentials are reused across URLs for this long before a refresh
SIGNING_CREDENTIALS_TTL_SECONDS = 300


class GCSStorageBackend(StorageBackend):
    """Google Cloud Storage backend."""

    def __init__(self):
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None
        self._signing_creds: Optional[service_account.Credentials] = None
        self._signing_creds_expiry = 0.0
        self._signing_lock = threading.Lock()

    def _get_bucket(self) -> storage.Bucket:
        """Lazy-load and cache GCS bucket."""
        if self._bucket is None:
            if not settings.GCS_BUCKET_NAME:
                raise ValueError("GCS_BUCKET_NAME not configured")

            self._client = storage.Client(project=settings.GCP_PROJECT_ID or None)
            self._bucket = self._client.bucket(settings.GCS_BUCKET_NAME)

        return self._bucket

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(Exception),
        reraise=True,
    )
    def _signing_credentials(self) -> service_account.Credentials:
        """Build credentials that sign through the IAM signBlob API.

        Uses the runtime service account (Cloud Run / GCE / GKE), which must
        hold roles/iam.serviceAccountTokenCreator on itself. No private key
        file is needed.
        """
        from google.auth import compute_engine, iam
        from google.auth.transport import requests as auth_requests

        credentials = compute_engine.Credentials()
        auth_request = auth_requests.Request()

        # Refresh to learn the service account email
        credentials.refresh(auth_request)
        service_account_email = credentials.service_account_email

        signer = iam.Signer(
            request=auth_request,
            credentials=credentials,
            service_account_email=service_account_email,
        )

        # token_uri is required by the constructor; signing goes through the signer
        return service_account.Credentials(
            signer=signer,
            service_account_email=service_account_email,
            token_uri="https://oauth2.googleapis.com/token",
        )

    def _get_signing_credentials(self) -> service_account.Credentials:
        """Return cached signing credentials, rebuilding them once stale.

        Signed URLs for one session are minted from worker threads in
        parallel; the lock keeps that to a single metadata refresh.
        """
        with self._signing_lock:
            now = time.monotonic()
            if self._signing_creds is None or now >= self._signing_creds_expiry:
                self._signing_creds = self._signing_credentials()
                self._signing_creds_expiry = now + SIGNING_CREDENTIALS_TTL_SECONDS
            return self._signing_creds

    def generate_signed_upload_url(
        self, path: str, content_type: str, expiration_minutes: int
    ) -> str:
        """Generate a V4 signed URL for a direct PUT upload."""
        blob = self._get_bucket().blob(path)
        signing_creds = self._get_signing_credentials()

        return blob.generate_signed_url(
            version="v4",
            expiration=timedelta(minutes=expiration_minutes),
            method="PUT",
            content_type=content_type,
            credentials=signing_creds,
            service_account_email=signing_creds.service_account_email,
        )

    def get_object_size(self, path: str) -> Optional[int]:
        blob = self._get_bucket().get_blob(path)
        if blob is None:
            return None
        return blob.size

    def read_object(self, path: str) -> bytes:
        return self._get_bucket().blob(path).download_as_bytes()

    def public_url(self, path: str) -> str:
        return f"https://storage.googleapis.com/{settings.GCS_BUCKET_NAME}/{path}"

    def get_backend_name(self) -> str:
        return "gcs"


# Singleton instance
gcs_backend = GCSStorageBackend()
