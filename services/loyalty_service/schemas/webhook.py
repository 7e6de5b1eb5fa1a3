"""Payment webhook response schema."""

import uuid
from typing import Optional

from pydantic import BaseModel


class WebhookAck(BaseModel):
    received: bool = True
    processed: bool
    message: str
    activated: Optional[bool] = None
    commission_id: Optional[uuid.UUID] = None
