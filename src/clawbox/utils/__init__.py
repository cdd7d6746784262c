"""Shared utilities for clawbox."""
