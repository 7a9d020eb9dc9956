"""Trip and stop models - the aggregates cached for offline use."""

from datetime import date, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from tripsync.models.common import Location, TripStatus


class BookingInfo(BaseModel):
    """Reservation details attached to a stop."""

    confirmation_number: str | None = None
    site_number: str | None = None
    special_instructions: str | None = None


class TripStop(BaseModel):
    """Single overnight stop within a trip.

    Accepts both the backend's snake_case columns and the camelCase names
    older clients wrote to the cache.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    trip_id: str = Field(..., min_length=1, validation_alias=AliasChoices("trip_id", "tripId"))
    resort_id: str | None = Field(None, validation_alias=AliasChoices("resort_id", "resortId"))
    stop_order: int = Field(..., ge=0, validation_alias=AliasChoices("stop_order", "stopOrder"))
    check_in: date = Field(..., validation_alias=AliasChoices("check_in", "checkIn"))
    check_out: date = Field(..., validation_alias=AliasChoices("check_out", "checkOut"))
    notes: str = ""
    booking_info: BookingInfo | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> "TripStop":
        if self.check_out < self.check_in:
            raise ValueError(
                f"check_out {self.check_out} is before check_in {self.check_in}"
            )
        return self


class StopOrder(BaseModel):
    """New position for one stop in a reorder."""

    id: str
    stop_order: int = Field(..., ge=0)


class Trip(BaseModel):
    """Multi-stop road trip."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    user_id: str = Field(..., validation_alias=AliasChoices("user_id", "userId"))
    name: str
    start_location: Location | None = None
    end_location: Location | None = None
    start_date: date | None = Field(None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: date | None = Field(None, validation_alias=AliasChoices("end_date", "endDate"))
    status: TripStatus = TripStatus.draft
    created_at: datetime | None = Field(
        None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: datetime | None = Field(
        None, validation_alias=AliasChoices("updated_at", "updatedAt")
    )
    stops: list[TripStop] = Field(default_factory=list)

    def stop_ids(self) -> set[str]:
        """Ids of the stops currently in the snapshot."""
        return {stop.id for stop in self.stops}

    def find_stop(self, stop_id: str) -> TripStop | None:
        """Get a stop by id, None if the trip does not hold it."""
        for stop in self.stops:
            if stop.id == stop_id:
                return stop
        return None
