"""Actor context for a trip session."""

from dataclasses import dataclass

GUEST_USER_ID = "00000000-0000-4000-8000-000000000000"


@dataclass(frozen=True)
class ActorContext:
    """Who is performing mutations.

    Guests keep everything on the device; their writes never reach the
    backend or the mutation queue.
    """

    user_id: str
    is_guest: bool = False

    @classmethod
    def guest(cls) -> "ActorContext":
        """Anonymous actor."""
        return cls(user_id=GUEST_USER_ID, is_guest=True)
