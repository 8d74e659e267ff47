# filehub/api/v1/health.py
import time
from fastapi import APIRouter
from pydantic import BaseModel

from ...core.config import get_settings

router = APIRouter()
_started = time.time()

class Health(BaseModel):
    status: str
    app: str
    uptime_s: float

@router.get("", response_model=Health)
def health():
    return Health(status="ok", app=get_settings().APP_NAME, uptime_s=time.time() - _started)
