import os
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

CATALOG_BACKENDS = ("dynamodb", "memory")


def _split_origins(raw: str) -> Tuple[str, ...]:
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


class Settings(BaseModel):
    """Process-wide configuration, built once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    port: int = 5000
    cors_origins: Tuple[str, ...] = ()

    catalog_backend: str = "dynamodb"
    catalog_table: str = "DocumentsCatalog"
    aws_region: str = "us-east-1"
    dynamodb_endpoint: Optional[str] = None

    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    storage_folder: str = "documents"

    upstream_timeout: float = 30.0
    max_file_size: int = MAX_FILE_SIZE

    log_dir: str = "logs"
    log_level: str = "INFO"

    @field_validator("catalog_backend")
    def validate_catalog_backend(cls, v):
        v = v.strip().lower()
        if v not in CATALOG_BACKENDS:
            raise ValueError(f"CATALOG_BACKEND must be one of {', '.join(CATALOG_BACKENDS)}")
        return v

    @property
    def storage_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            port=int(os.getenv("PORT", 5000)),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "")),
            catalog_backend=os.getenv("CATALOG_BACKEND", "dynamodb"),
            catalog_table=os.getenv("DYNAMODB_TABLE_DOCUMENTS", "DocumentsCatalog"),
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
            dynamodb_endpoint=os.getenv("LOCALSTACK_ENDPOINT") or None,
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME") or None,
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY") or None,
            cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET") or None,
            storage_folder=os.getenv("CLOUDINARY_FOLDER", "documents"),
            upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30.0")),
            log_dir=os.getenv("LOG_DIR", "logs"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
