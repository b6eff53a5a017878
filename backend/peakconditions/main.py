from fastapi import FastAPI

from peakconditions.api.routes import router
from peakconditions.config.logging_config import setup_logging
from peakconditions.config.settings import settings

setup_logging()

app = FastAPI(title=settings.service_name)
app.include_router(router)
