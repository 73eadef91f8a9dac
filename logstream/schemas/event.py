# Pydantic schemas

from pydantic import BaseModel, ConfigDict, Field, field_validator

from logstream.core.timestamps import normalize_timestamp


class EventCreate(BaseModel):
    """Schema for ingesting a single event"""

    group: str = Field(..., min_length=1, max_length=255)
    stream: str = Field(..., min_length=1, max_length=255)
    timestamp: str
    message: str = ""

    @field_validator('group', 'stream')
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('Field cannot be empty or whitespace')
        return v.strip()

    @field_validator('timestamp')
    @classmethod
    def validate_timestamp(cls, v: str) -> str:
        # Stored form must sort chronologically as a plain string
        try:
            return normalize_timestamp(v)
        except ValueError as e:
            raise ValueError(f'Invalid RFC3339 timestamp: {e}') from e


class IngestResponse(BaseModel):
    """Response for a single ingest"""

    stored: bool
    indexed: bool


class GroupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group: str
    last_event_time: str = Field(serialization_alias="lastEventTime")


class StreamResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stream: str
    last_event_time: str = Field(serialization_alias="lastEventTime")


class StreamSearchResponse(StreamResponse):
    """Stream listing row backed by a search hit; message carries <mark> highlights"""

    message: str


class EventResponse(BaseModel):
    timestamp: str
    message: str


class ReindexResponse(BaseModel):
    indexed: int


class SweepResponse(BaseModel):
    cutoff: str
    events_deleted: int
    streams_deleted: int
    documents_deleted: int | None
    index_error: str | None = None
