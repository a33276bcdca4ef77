"""
App management endpoints.

Saved app configurations, the shared output directory, and per-app
generation. Every mutation is persisted and recorded in the metrics log.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict

from ..apps import AppConfig
from ..apps.errors import AppNotFoundError, AppValidationError, OutputDirectoryNotSetError
from ..packaging import PackagingResult
from ..packaging.errors import PackagingError
from .packaging import status_for_packaging_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/apps", tags=["apps"])


class AppRequest(BaseModel):
    """Request body for adding or editing an app."""

    model_config = ConfigDict(extra="forbid")

    app_name: str
    input_zip_path: str
    output_ipa_name: str


class RenameAppRequest(BaseModel):
    """Request body for renaming an app."""

    model_config = ConfigDict(extra="forbid")

    new_name: str


class OutputDirectoryRequest(BaseModel):
    """Request body for setting the output directory."""

    model_config = ConfigDict(extra="forbid")

    path: str


class AppListResponse(BaseModel):
    output_directory: Optional[str] = None
    apps: List[AppConfig]


class OperationResponse(BaseModel):
    success: bool
    message: str


@router.get("", response_model=AppListResponse)
async def list_apps(request: Request, q: Optional[str] = None):
    """
    List saved apps.

    Args:
        q: Optional case-insensitive filter on app name or input path
    """
    registry = request.app.state.app_service.registry
    apps = registry.search(q) if q else registry.list_apps()
    return AppListResponse(output_directory=registry.output_directory, apps=apps)


@router.put("/output-directory", response_model=OperationResponse)
async def set_output_directory(body: OutputDirectoryRequest, request: Request):
    """
    Set the directory generated .ipa files are written to.

    Raises:
        400: Path is not an existing directory
    """
    try:
        request.app.state.app_service.set_output_directory(body.path)
    except AppValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return OperationResponse(success=True, message=f"Output directory set to {body.path}")


@router.post("", response_model=AppConfig, status_code=201)
async def add_app(body: AppRequest, request: Request):
    """
    Raises:
        400: Blank name or input path, or malformed output name
    """
    try:
        return request.app.state.app_service.add_app(
            body.app_name, body.input_zip_path, body.output_ipa_name
        )
    except AppValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{app_id}", response_model=AppConfig)
async def get_app(app_id: str, request: Request):
    try:
        return request.app.state.app_service.registry.get_app(app_id)
    except AppNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{app_id}", response_model=AppConfig)
async def edit_app(app_id: str, body: AppRequest, request: Request):
    """
    Raises:
        404: App not found
        400: Blank name or input path, or malformed output name
    """
    try:
        return request.app.state.app_service.update_app(
            app_id, body.app_name, body.input_zip_path, body.output_ipa_name
        )
    except AppNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AppValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{app_id}/rename", response_model=AppConfig)
async def rename_app(app_id: str, body: RenameAppRequest, request: Request):
    try:
        return request.app.state.app_service.rename_app(app_id, body.new_name)
    except AppNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AppValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{app_id}", response_model=OperationResponse)
async def delete_app(app_id: str, request: Request):
    try:
        app = request.app.state.app_service.remove_app(app_id)
    except AppNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return OperationResponse(success=True, message=f"Removed {app.app_name}")


@router.post("/{app_id}/generate", response_model=PackagingResult)
def generate_app(app_id: str, request: Request):
    """
    Package a saved app into the output directory.

    Raises:
        404: App or source archive not found
        409: No output directory configured
        400/422/500: Packaging failure (see POST /package)
    """
    service = request.app.state.app_service
    try:
        return service.generate(app_id)
    except AppNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OutputDirectoryNotSetError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PackagingError as e:
        raise HTTPException(status_code=status_for_packaging_error(e), detail=str(e))
