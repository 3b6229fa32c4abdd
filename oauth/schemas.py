"""Request and response bodies for the OAuth endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class ClientRegistrationRequest(BaseModel):
    redirect_uris: list[str] = Field(default_factory=list)
    client_name: Optional[str] = None


class ClientRegistrationResponse(BaseModel):
    client_id: str
    client_secret: Optional[str] = None
    client_name: Optional[str] = None
    redirect_uris: list[str]
