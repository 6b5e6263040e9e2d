"""Common Pydantic schemas."""

from typing import Annotated, Literal, Optional

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

# Strings that are trimmed before length checks
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]


class RequestModel(BaseModel):
    """Base for request bodies; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResponseModel(BaseModel):
    """Base for response bodies; read from ORM objects, dumped as camelCase."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class GeoPoint(BaseModel):
    """GeoJSON point with an optional address and description."""

    type: Literal["Point"] = Field("Point", description="GeoJSON geometry type")
    coordinates: list[float] = Field(
        ..., min_length=2, max_length=2, description="[longitude, latitude]"
    )
    address: Optional[str] = Field(None, description="Street address")
    description: Optional[str] = Field(None, description="Human-readable description")

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, v: list[float]) -> list[float]:
        """Validate longitude and latitude ranges."""
        lng, lat = v
        if not -180 <= lng <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v


class Location(GeoPoint):
    """Itinerary stop of a tour."""

    day: Optional[int] = Field(None, ge=0, description="Day of the tour the stop is visited")
