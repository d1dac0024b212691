from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from shared.common_utils.logger import logger
from .storages import ConfigStore

JSON_MEDIA_TYPE = "application/json; charset=UTF-8"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"


def create_router(store: ConfigStore, prefix: str = "/remote-configuration") -> APIRouter:
    """Read-only routes over a store: the list of tracked paths and the raw file for a path."""
    prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
    router = APIRouter(prefix=prefix, tags=["configuration"])

    @router.get("" if prefix else "/", response_class=JSONResponse)
    async def list_configurations() -> JSONResponse:
        paths = await store.list_paths()
        return JSONResponse(content=paths, media_type=JSON_MEDIA_TYPE)

    # the path parameter arrives already percent-decoded
    @router.get("/{name:path}")
    async def get_configuration(name: str) -> Response:
        data = await store.read(name)
        if data is None:
            logger.info(f"Configuration {name} not found.")
            return Response(status_code=404)
        return Response(content=data, media_type=TEXT_MEDIA_TYPE)

    return router
