"""Secret request/response schemas."""

from pydantic import BaseModel


class SecretCreate(BaseModel):
    name: str
    description: str | None = None
    value: str


class SecretUpdate(BaseModel):
    name: str
    description: str | None = None
    value: str


class SecretInfo(BaseModel):
    id: str
    name: str
    description: str | None
    created_at: int
    updated_at: int
    # value is NEVER returned

    model_config = {"from_attributes": True}


class SecretResponse(SecretInfo):
    """Full record, value included. Trusted local callers only."""

    value: str


class SecretSearchResult(BaseModel):
    name: str
    description: str | None


class WriteEnvResult(BaseModel):
    success: bool = True
    written: int
    missing: list[str]
