from kbforge.api.routers.jobs import router as jobs_router
from kbforge.api.routers.sources import router as sources_router

__all__ = ["jobs_router", "sources_router"]
