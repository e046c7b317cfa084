import hashlib
import time
from typing import Any, Dict, NamedTuple

import requests

from .classifier import PDF_MEDIA_TYPE, Classification, DeliveryMode
from .config import Settings
from .exceptions import StorageNotConfiguredError, UpstreamError
from .logger import get_logger

logger = get_logger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"

# destroy() results that mean the bytes are gone
DESTROYED_RESULTS = ("ok", "not found")

# sent with PDF uploads only
PDF_UPLOAD_PARAMS = {"format": "pdf", "content_type": PDF_MEDIA_TYPE}


class StoredObject(NamedTuple):
    canonical_url: str
    object_id: str
    resource_type: str


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """SHA-1 request signature: sorted ``key=value`` pairs joined by ``&``, followed by the secret."""
    to_sign = "&".join(f"{key}={_param_value(params[key])}" for key in sorted(params) if params[key] is not None)
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryObjectStore:
    """Stores document bytes in Cloudinary through its signed REST API."""

    def __init__(self, settings: Settings):
        self.cloud_name = settings.cloudinary_cloud_name
        self.api_key = settings.cloudinary_api_key
        self.api_secret = settings.cloudinary_api_secret
        self.folder = settings.storage_folder
        self.timeout = settings.upstream_timeout

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _endpoint(self, resource_type: str, action: str) -> str:
        return f"{CLOUDINARY_API_BASE}/{self.cloud_name}/{resource_type}/{action}"

    def _signed(self, params: Dict[str, Any]) -> Dict[str, str]:
        params = dict(params, timestamp=int(time.time()))
        signed = {key: _param_value(value) for key, value in params.items()}
        signed["signature"] = sign_params(params, self.api_secret)
        signed["api_key"] = self.api_key
        return signed

    def _post(self, url: str, data: Dict[str, str], **kwargs) -> Dict[str, Any]:
        try:
            resp = requests.post(url, data=data, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.HTTPError as e:
            logger.error(f"Object store returned error: {e.response.status_code} - {e.response.text}")
            raise UpstreamError(f"Object store error {e.response.status_code}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Error calling object store: {str(e)}", exc_info=True)
            raise UpstreamError(f"Object store request failed: {e}") from e

    def upload(self, content: bytes, file_name: str, classification: Classification) -> StoredObject:
        if not self.configured:
            raise StorageNotConfiguredError()

        resource_type = classification.delivery_mode.resource_type
        params = {
            "public_id": f"{self.folder}/{int(time.time() * 1000)}_{file_name}",
            "use_filename": True,
            "unique_filename": False,
        }
        if classification.delivery_mode is DeliveryMode.RAW_ATTACHMENT:
            params.update(PDF_UPLOAD_PARAMS)
        result = self._post(
            self._endpoint(resource_type, "upload"),
            self._signed(params),
            files={"file": (file_name, content)},
        )
        if not result.get("secure_url") or not result.get("public_id"):
            logger.error(f"Object store upload response missing fields: {result}")
            raise UpstreamError("Object store upload response is incomplete")

        logger.info(f"Stored {file_name} as {result['public_id']} ({resource_type})")
        return StoredObject(
            canonical_url=result["secure_url"],
            object_id=result["public_id"],
            resource_type=resource_type,
        )

    def destroy(self, object_id: str, resource_type: str) -> None:
        if not self.configured:
            raise StorageNotConfiguredError()

        result = self._post(
            self._endpoint(resource_type, "destroy"),
            self._signed({"public_id": object_id, "invalidate": True}),
        )
        if result.get("result") not in DESTROYED_RESULTS:
            logger.error(f"Object store refused to delete {object_id}: {result}")
            raise UpstreamError(f"Object store delete failed for {object_id}")
        logger.info(f"Deleted stored object {object_id} ({result['result']})")
