# app/schemas/token.py
from pydantic import BaseModel, Field
from typing import Optional


class TokenPayload(BaseModel):
    sub: str  # "sub" is the standard claim for subject (user ID)
    # Clubs the caller belongs to, as issued by the auth service
    club_ids: list[str] = Field(default_factory=list, alias="clubIds")
    email: Optional[str] = None
    exp: int

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
    }
