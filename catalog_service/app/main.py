from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from . import exceptions, urls
from .catalog_store import CatalogStore, build_catalog_store
from .classifier import ACCEPTED_EXTENSIONS
from .config import Settings
from .logger import configure_logging, get_logger
from .object_store import CloudinaryObjectStore
from .query import build_query
from .schemas import (
    DocumentDetail,
    DocumentFields,
    DocumentRecord,
    DocumentUpdate,
    ErrorResponse,
    MessageResponse,
    SupportedTypesResponse,
)
from .service import DocumentService

logger = get_logger(__name__)

# localhost / 127.0.0.1 on any port is always allowed
LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def _error(status_code: int, error_code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error_code=error_code, message=message).model_dump(exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(exceptions.UpstreamError)
    async def upstream_exception_handler(request: Request, exc: exceptions.UpstreamError):
        logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc.error_code} - {exc.reason}")
        return _error(exc.status_code, exc.error_code, exc.detail)

    @app.exception_handler(exceptions.CatalogException)
    async def catalog_exception_handler(request: Request, exc: exceptions.CatalogException):
        logger.warning(f"Catalog Exception: {exc.error_code} - {exc.detail}")
        return _error(exc.status_code, exc.error_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Request validation failed: {exc.errors()}")
        message = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
        return _error(400, "VALIDATION_ERROR", message or "Invalid input data")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        return _error(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
        return _error(500, "INTERNAL_ERROR", "An unexpected error occurred")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_service(request: Request) -> DocumentService:
    return request.app.state.service


def create_app(
    settings: Optional[Settings] = None,
    catalog: Optional[CatalogStore] = None,
    object_store: Optional[CloudinaryObjectStore] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    log_file = configure_logging(settings.log_dir, settings.log_level)
    catalog = catalog or build_catalog_store(settings)
    object_store = object_store or CloudinaryObjectStore(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info(f"Logging to {log_file}")
        logger.info(f"CORS origins: {list(settings.cors_origins)}")
        if not settings.storage_configured:
            logger.warning("Cloudinary credentials missing. Uploads will be rejected.")
        catalog.ensure_ready()
        yield

    app = FastAPI(title="Document Catalog", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = DocumentService(catalog, object_store, settings.max_file_size)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_origin_regex=LOCAL_ORIGIN_REGEX,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.get("/api/health")
    def health(settings: Settings = Depends(get_settings)):
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "features": {
                "pdfSupport": True,
                "storageConfigured": settings.storage_configured,
                "catalogBackend": settings.catalog_backend,
            },
        }

    @app.get("/api/supported-types", response_model=SupportedTypesResponse)
    def supported_types(settings: Settings = Depends(get_settings)):
        return SupportedTypesResponse(supported_types=list(ACCEPTED_EXTENSIONS), max_file_size=settings.max_file_size)

    # GET /api/documents?search=&category=&sort=uploadTime:desc
    @app.get("/api/documents", response_model=List[DocumentRecord])
    async def list_documents(
        search: Optional[str] = Query(None),
        category: Optional[str] = Query(None),
        sort: Optional[str] = Query(None),
        service: DocumentService = Depends(get_service),
    ):
        return await service.list(build_query(search, category, sort))

    @app.post("/api/documents", response_model=DocumentRecord, status_code=201)
    async def upload_document(
        file: Optional[UploadFile] = File(None),
        title: Optional[str] = Form(None),
        author: Optional[str] = Form(None),
        category: Optional[str] = Form(None),
        description: Optional[str] = Form(None),
        service: DocumentService = Depends(get_service),
    ):
        fields = DocumentFields(title=title, author=author, category=category, description=description)
        if file is None:
            return await service.create(fields, None, None, None)

        # Never buffer more than one byte past the ceiling
        content = await file.read(service.max_file_size + 1)
        return await service.create(fields, file.filename, file.content_type, content)

    @app.get("/api/documents/{doc_id}", response_model=DocumentDetail)
    async def read_document(doc_id: str, service: DocumentService = Depends(get_service)):
        record = await service.get(doc_id)
        return DocumentDetail(**record.model_dump(), urls=urls.document_urls(record))

    @app.get("/api/documents/{doc_id}/preview")
    async def preview_document(doc_id: str, service: DocumentService = Depends(get_service)):
        record = await service.get(doc_id)
        return RedirectResponse(url=record.preview_url, status_code=302, headers=urls.preview_headers(record))

    @app.get("/api/documents/{doc_id}/download")
    async def download_document(doc_id: str, service: DocumentService = Depends(get_service)):
        record = await service.get(doc_id)
        return RedirectResponse(url=record.download_url, status_code=302, headers=urls.download_headers(record))

    @app.patch("/api/documents/{doc_id}", response_model=DocumentRecord)
    async def update_document(doc_id: str, body: DocumentUpdate, service: DocumentService = Depends(get_service)):
        return await service.update(doc_id, body)

    @app.delete("/api/documents/{doc_id}", response_model=MessageResponse)
    async def delete_document(doc_id: str, service: DocumentService = Depends(get_service)):
        await service.delete(doc_id)
        return MessageResponse(message="Document deleted successfully", id=doc_id)

    @app.get("/api/categories", response_model=List[str])
    async def list_categories(service: DocumentService = Depends(get_service)):
        return await service.categories()


def run() -> None:
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
