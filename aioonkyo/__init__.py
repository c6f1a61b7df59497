"""Onkyo receiver Interface Module.

This module provides an asyncio handler for controlling home A/V
receivers made by Onkyo and Integra, over the network or a serial port.
"""
from aioonkyo.client import Onkyo  # noqa: F401
from aioonkyo.connection import ConnectionManager, ConnectionState  # noqa: F401
from aioonkyo.exceptions import (  # noqa: F401
    ConnectError,
    ConstructionError,
    FramingError,
    OnkyoError,
)
from aioonkyo.protocol import Frame, FrameReader  # noqa: F401
