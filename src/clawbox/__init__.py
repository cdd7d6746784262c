"""clawbox: control plane for isolated agent instances on Apple's container runtime."""

__version__ = "0.1.0"
