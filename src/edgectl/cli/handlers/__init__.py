"""
This module contains the handler functions for the CLI commands.
"""
from .login import login_with_password
from .whoami import check_token
from .metrics import send_metrics

__all__ = [
    "login_with_password",
    "check_token",
    "send_metrics",
]
