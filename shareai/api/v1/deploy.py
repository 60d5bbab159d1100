"""Deployment endpoints: read or store provider parameters for an image."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from shareai.api.deps import get_deploy_service
from shareai.api.v1.auth import get_current_user
from shareai.schemas.deploy import DeployRequest, DeployResponse
from shareai.services.auth import AuthContext
from shareai.services.deploy import DeployService

router = APIRouter()


@router.get("/{image_id}", response_model=DeployResponse)
def get_deploy_info(
    image_id: str,
    provider_id: Annotated[str, Query(min_length=1)],
    _user: Annotated[AuthContext, Depends(get_current_user)],
    deploy: Annotated[DeployService, Depends(get_deploy_service)],
) -> DeployResponse:
    """Return provider name, API URL and stored parameters for (image, provider)."""
    return deploy.get_deploy_info(image_id, provider_id)


@router.post("/{image_id}", response_model=DeployResponse)
def deploy_image(
    image_id: str,
    body: DeployRequest,
    _user: Annotated[AuthContext, Depends(get_current_user)],
    deploy: Annotated[DeployService, Depends(get_deploy_service)],
) -> DeployResponse:
    """Store (or overwrite) the deployment parameters of an image on a provider."""
    return deploy.deploy(image_id, body.provider_id, body.params)
