"""Bridge package: loopback TCP proxy into an instance-internal port.

- relay.py: In-instance relay programs and their selection
- proxy.py: LocalProxyBridge listener and per-connection bridges
"""

from .proxy import LocalProxyBridge, start_local_proxy
from .relay import BridgeSpec, resolve_bridge_spec

__all__ = [
    "BridgeSpec",
    "LocalProxyBridge",
    "resolve_bridge_spec",
    "start_local_proxy",
]
