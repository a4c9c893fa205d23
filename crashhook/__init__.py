"""
Crashhook - A supervisord event listener that reports process crashes.

This package implements the supervisord eventlistener protocol, picks out
unexpected process exits for a configured set of programs, and pushes a
message about each one to a chat webhook (Feishu, Slack or a plain JSON
endpoint).
"""

__version__ = "0.1.0"
