"""Gateway package: health, start, bootstrap watcher, token recovery.

- scripts.py: In-instance shell scripts
- orchestrator.py: GatewayOrchestrator state machine
"""

from .orchestrator import GatewayOrchestrator, ensure_gateway, format_gateway_result
from .scripts import is_gateway_token_missing_log

__all__ = [
    "GatewayOrchestrator",
    "ensure_gateway",
    "format_gateway_result",
    "is_gateway_token_missing_log",
]
