"""
Application events.

Services publish typed events after a state change commits; local subscribers
(metrics, for one) run in-process and the event is pushed to connected clients
over Socket.IO. Clients subscribe by room: `user:<id>` is joined automatically
on connect, `campaign:<id>` via the join_campaign message.
"""

from __future__ import annotations
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from shopfund.realtime import socketio

log = logging.getLogger(__name__)


class Event(str, Enum):
    PROFILE_UPDATED = "profile_updated"
    REWARD_STATUS_CHANGED = "reward_status_changed"
    CAMPAIGN_STATUS_CHANGED = "campaign_status_changed"
    DONATION_COMPLETED = "donation_completed"


Handler = Callable[[Dict[str, Any]], None]
_subscribers: Dict[Event, List[Handler]] = defaultdict(list)


def subscribe(event: Event, handler: Handler) -> None:
    if handler not in _subscribers[event]:
        _subscribers[event].append(handler)


def unsubscribe(event: Event, handler: Handler) -> None:
    if handler in _subscribers[event]:
        _subscribers[event].remove(handler)


def publish(event: Event, payload: Dict[str, Any], rooms: Optional[List[str]] = None) -> None:
    """
    Deliver to local subscribers, then emit to each room. A failing subscriber or
    a socket error is logged and never reaches the caller: the state change the
    event describes has already happened.
    """
    for handler in list(_subscribers[event]):
        try:
            handler(payload)
        except Exception:
            log.exception("[events] subscriber failed for %s", event.value)
    for room in rooms or []:
        try:
            socketio.emit(event.value, payload, to=room)
        except Exception:
            log.exception("[events] emit failed for %s to %s", event.value, room)
