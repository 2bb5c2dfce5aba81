"""Shared utilities for ARIOT Web."""
from __future__ import annotations
