"""Helpers for concurrent port scanning."""

from .cancel_token import CancelToken
from .listener_parsers import Listener, parse_lsof_output, parse_netstat_output, parse_ss_output
from .listener_strategies import DEFAULT_STRATEGIES, ListenerQuery, ListenerStrategy

__all__ = [
    "CancelToken",
    "DEFAULT_STRATEGIES",
    "Listener",
    "ListenerQuery",
    "ListenerStrategy",
    "parse_lsof_output",
    "parse_netstat_output",
    "parse_ss_output",
]
