from .channel_registry import ChannelEntry, ChannelRegistry
from .dispatcher import Dispatcher
from .request_ids import RequestIdGenerator
from .transport import Transport, WebsocketsTransport
from .wire import WireFormat, get_wire_format
from .ws_client import ConnectionState, FeedClient
from .ws_router import HandlerTable, build_default_handlers

__all__ = [
    "ChannelEntry",
    "ChannelRegistry",
    "ConnectionState",
    "Dispatcher",
    "FeedClient",
    "HandlerTable",
    "RequestIdGenerator",
    "Transport",
    "WebsocketsTransport",
    "WireFormat",
    "build_default_handlers",
    "get_wire_format",
]
