"""Write routing decision table."""

from enum import Enum

from tripsync.session.context import ActorContext


class WriteRoute(str, Enum):
    """Where a mutation goes after the local cache write."""

    REMOTE = "remote"  # send now, surface failures
    QUEUE = "queue"  # enqueue for the next drain
    LOCAL_ONLY = "local_only"  # never leaves the device


def route_for(online: bool, actor: ActorContext) -> WriteRoute:
    """Decision table for every trip and stop mutation.

    | online  | registered | REMOTE     |
    | online  | guest      | LOCAL_ONLY |
    | offline | registered | QUEUE      |
    | offline | guest      | LOCAL_ONLY |
    """
    if actor.is_guest:
        return WriteRoute.LOCAL_ONLY
    if online:
        return WriteRoute.REMOTE
    return WriteRoute.QUEUE
