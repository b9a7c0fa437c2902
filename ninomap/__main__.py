"""Run the mapping service: python -m ninomap"""

import uvicorn

from ninomap.config.settings import settings
from ninomap.util.logger import logger

logger.info("starting %s env=%s host=%s port=%s", settings.app_name, settings.env, settings.host, settings.port)
uvicorn.run("ninomap.core.gateway:create_app", host=settings.host, port=settings.port, factory=True)
