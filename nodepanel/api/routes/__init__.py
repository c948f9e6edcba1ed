from nodepanel.api.routes.environments import router as environments_router
from nodepanel.api.routes.nodes import router as nodes_router
from nodepanel.api.routes.panels import router as panels_router

__all__ = ["environments_router", "nodes_router", "panels_router"]
