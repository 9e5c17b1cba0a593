from __future__ import annotations
from typing import Any
from pydantic import BaseModel


class WSMessage(BaseModel):
    event: str  # toast | data_sync | critical_issue | error
    title: str = ""
    description: str = ""
    variant: str = "default"  # default | destructive
    data: dict[str, Any] = {}
