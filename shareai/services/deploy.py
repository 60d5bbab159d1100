"""Deployment lookup: per-image provider parameters stored as JSON text."""

import json
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shareai.core.errors import InternalError, NotFoundError
from shareai.models.image import Image
from shareai.models.provider import ImageProvider, Provider
from shareai.schemas.deploy import DeployResponse

logger = logging.getLogger(__name__)


class DeployService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _provider(self, provider_id: str) -> Provider:
        provider = self.db.get(Provider, provider_id)
        if provider is None:
            raise NotFoundError("provider not found")
        return provider

    def get_deploy_info(self, image_id: str, provider_id: str) -> DeployResponse:
        """Return the stored provider configuration for the (image, provider) pair."""
        config = self.db.get(ImageProvider, (image_id, provider_id))
        if config is None:
            raise NotFoundError("deployment configuration not found")
        provider = self._provider(provider_id)

        params: dict[str, Any] | None = None
        if config.params:
            try:
                params = json.loads(config.params)
            except json.JSONDecodeError as e:
                logger.error(
                    "Stored params for image_id=%s provider_id=%s are not JSON: %s",
                    image_id,
                    provider_id,
                    e,
                )
                raise InternalError("failed to parse provider params") from e
        return DeployResponse(provider_name=provider.name, api_url=provider.api_url, params=params)

    def deploy(self, image_id: str, provider_id: str, params: dict[str, Any]) -> DeployResponse:
        """Create or overwrite the parameters for (image, provider)."""
        if self.db.get(Image, image_id) is None:
            raise NotFoundError("image not found")
        provider = self._provider(provider_id)
        encoded = json.dumps(params or {})

        config = self.db.get(ImageProvider, (image_id, provider_id))
        if config is None:
            self.db.add(ImageProvider(image_id=image_id, provider_id=provider_id, params=encoded))
        else:
            config.params = encoded
        try:
            self.db.commit()
        except IntegrityError:
            # Another request inserted the pair first; overwrite its params.
            self.db.rollback()
            config = self.db.get(ImageProvider, (image_id, provider_id))
            if config is None:
                raise
            config.params = encoded
            self.db.commit()
        logger.info("Stored deploy params image_id=%s provider_id=%s", image_id, provider_id)
        return DeployResponse(provider_name=provider.name, api_url=provider.api_url, params=params)
