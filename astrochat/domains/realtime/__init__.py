from astrochat.domains.realtime.gateway import Connection, FanoutGateway  # noqa: F401
from astrochat.domains.realtime.protocol import WsInbound, WsOutbound  # noqa: F401

__all__ = ["Connection", "FanoutGateway", "WsInbound", "WsOutbound"]
