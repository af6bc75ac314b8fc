from typing import Literal

from pydantic import BaseModel


class NarrationEvent(BaseModel): # Envelope pushed to live subscribers
    role: Literal["ai"] = "ai"
    text: str
