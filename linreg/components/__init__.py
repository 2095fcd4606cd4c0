"""
System components for linreg.

This module provides system-level components for the linreg service.
The HTTP server lives in linreg.components.server.
"""

from linreg.components.config import Config, ConfigManager
