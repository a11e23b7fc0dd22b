import uvicorn

from .config import settings

uvicorn.run("scrapeflow.main:app", host=settings.host, port=settings.port, reload=settings.debug)
