"""Resort model - read-only reference data cached as discovered."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Resort(BaseModel):
    """RV resort or campground."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    address: str = ""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    rating: float | None = None
    amenities: dict[str, bool | int | float | str] = Field(default_factory=dict)
    phone: str | None = None
    website: str | None = None
    cost_per_night: float | None = Field(
        None, validation_alias=AliasChoices("cost_per_night", "costPerNight", "nightly_rate")
    )
    images: list[str] = Field(default_factory=list)
    last_updated: datetime | None = Field(
        None, validation_alias=AliasChoices("last_updated", "lastUpdated")
    )
