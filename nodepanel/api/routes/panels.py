from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import HTMLResponse

from nodepanel.api.deps import get_window
from nodepanel.panels.controller import NODE_DETAILS_VIEW_TYPE
from nodepanel.ws.hub import WebHostWindow

router = APIRouter(prefix="/panels", tags=["panels"])


@router.get("/node-details", response_class=HTMLResponse)
async def node_details_document(window: WebHostWindow = Depends(get_window)) -> HTMLResponse:
    panel = window.panel(NODE_DETAILS_VIEW_TYPE)
    if panel is None or not panel.html:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No node details panel is open")
    return HTMLResponse(panel.html, headers={"X-Panel-Title": panel.title})


@router.delete("/node-details", status_code=status.HTTP_204_NO_CONTENT)
async def close_node_details(window: WebHostWindow = Depends(get_window)) -> None:
    panel = window.panel(NODE_DETAILS_VIEW_TYPE)
    if panel is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No node details panel is open")
    panel.dispose()
