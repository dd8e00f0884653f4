from astrochat.domains.messages.events import EventBus, MessageCreated  # noqa: F401
from astrochat.domains.messages.model import Message  # noqa: F401
from astrochat.domains.messages.service import MessageLedger  # noqa: F401

__all__ = ["EventBus", "Message", "MessageCreated", "MessageLedger"]
