import logging
from urllib.parse import quote, unquote, urlparse

import requests
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/storage/v1/object/public/"
REQUEST_TIMEOUT = 15


class StorageError(Exception):
    pass


class StorageClient:
    """Client for a Supabase-compatible storage bucket."""

    def __init__(self, base_url, api_key, bucket, timeout=REQUEST_TIMEOUT):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.timeout = timeout

    @classmethod
    def from_config(cls, config=None):
        config = config or current_app.config
        return cls(
            base_url=config["STORAGE_URL"],
            api_key=config["STORAGE_KEY"],
            bucket=config["STORAGE_BUCKET"],
        )

    def _headers(self, extra=None):
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "apikey": self.api_key,
        }
        if extra:
            headers.update(extra)
        return headers

    def _object_url(self, kind, path):
        return f"{self.base_url}/storage/v1/object/{kind}/{self.bucket}/{quote(path)}"

    def public_url(self, path):
        return f"{self.base_url}{PUBLIC_PREFIX}{self.bucket}/{quote(path)}"

    def upload(self, path, data, content_type="application/octet-stream"):
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path)}"
        try:
            resp = requests.post(
                url,
                data=data,
                headers=self._headers({"Content-Type": content_type}),
                timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise StorageError(f"Upload failed: {exc}") from exc

        if resp.status_code >= 400:
            raise StorageError(f"Upload failed ({resp.status_code}): {resp.text}")

        return self.public_url(path)

    def create_signed_url(self, path, expires_in=120):
        try:
            resp = requests.post(
                self._object_url("sign", path),
                json={"expiresIn": expires_in},
                headers=self._headers(),
                timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise StorageError(f"Signing failed: {exc}") from exc

        if resp.status_code >= 400:
            raise StorageError(f"Signing failed ({resp.status_code}): {resp.text}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise StorageError("Signing failed: invalid response body") from exc

        signed = body.get("signedURL") or body.get("signedUrl")
        if not signed:
            raise StorageError("Signing failed: no signed URL in response")

        # the API answers with a path relative to /storage/v1
        if signed.startswith("/"):
            signed = f"{self.base_url}/storage/v1{signed}"
        return signed

    def remove(self, paths):
        try:
            resp = requests.delete(
                f"{self.base_url}/storage/v1/object/{self.bucket}",
                json={"prefixes": list(paths)},
                headers=self._headers(),
                timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise StorageError(f"Remove failed: {exc}") from exc

        if resp.status_code >= 400:
            raise StorageError(f"Remove failed ({resp.status_code}): {resp.text}")


def clean_public_url(raw_url):
    if not raw_url:
        return ""
    return raw_url.strip().lstrip("@")


def extract_storage_path(public_url, bucket):
    """Bucket-relative path of a public object URL, or "" if it is not one."""
    clean = clean_public_url(public_url)
    try:
        parsed = urlparse(clean)
    except ValueError:
        return ""
    if not parsed.scheme or not parsed.netloc:
        return ""

    idx = parsed.path.find(PUBLIC_PREFIX)
    if idx == -1:
        return ""

    remainder = parsed.path[idx + len(PUBLIC_PREFIX):]
    bucket_prefix = f"{bucket}/"
    if not remainder.startswith(bucket_prefix):
        return ""
    return unquote(remainder[len(bucket_prefix):])


def resolve_preview_url(public_url, storage=None, ttl=None):
    """Short-lived signed URL for a stored file, falling back to the original.

    Never raises: an unrecognized URL or a failed signing request both
    return the cleaned original URL.
    """
    fallback = clean_public_url(public_url)
    if storage is None:
        if not has_app_context():
            logger.warning("Storage is not configured, using public URL")
            return fallback
        storage = StorageClient.from_config()

    if ttl is None:
        ttl = current_app.config.get("SIGNED_URL_TTL", 120) if has_app_context() else 120

    path = extract_storage_path(public_url, storage.bucket)
    if not path:
        return fallback

    try:
        return storage.create_signed_url(path, ttl)
    except StorageError as exc:
        logger.warning("Could not sign %s: %s", path, exc)
        return fallback
