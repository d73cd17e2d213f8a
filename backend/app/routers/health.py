from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])

@router.get("", summary="Liveness probe")
def health(request: Request):
    dispatcher = getattr(request.app.state, "dispatcher", None)
    worker = "running" if dispatcher is not None and dispatcher.running else "stopped"
    return {"status": "ok", "aggregation_worker": worker}
