"""Static cluster information served at ``GET /info``."""

from pydantic import BaseModel, Field


class SwiftInfo(BaseModel):
    """Swift core limits advertised to clients."""

    account_listing_limit: int = 10000
    allow_account_management: bool = False
    container_listing_limit: int = 10000
    max_account_name_length: int = 256
    max_container_name_length: int = 256
    max_file_size: int = 5368709122
    max_header_size: int = 8192
    max_meta_name_length: int = 128
    max_meta_value_length: int = 256
    max_meta_count: int = 90
    max_meta_overall_size: int = 2048
    max_object_name_length: int = 1024
    strict_cors_mode: bool = True


class SloInfo(BaseModel):
    """Static large object limits."""

    max_manifest_segments: int = 1000


class TempAuthInfo(BaseModel):
    """Token authentication settings."""

    token_life: int


class ServerInfo(BaseModel):
    swift: SwiftInfo = Field(default_factory=SwiftInfo)
    slo: SloInfo = Field(default_factory=SloInfo)
    tempauth: TempAuthInfo


def build_info(token_life: int) -> dict:
    """Return the ``/info`` document for the configured token life."""
    return ServerInfo(tempauth=TempAuthInfo(token_life=token_life)).model_dump()
