"""Streams API schemas."""

from pydantic import BaseModel, Field


class StreamItem(BaseModel):
    url: str
    title: str
    name: str


class StreamsResponse(BaseModel):
    streams: list[StreamItem] = Field(default_factory=list)
