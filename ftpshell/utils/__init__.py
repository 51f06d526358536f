"""Utility module for ftpshell.

This module provides cross-cutting utilities:
- Logging: Configured logging with PII redaction
- Validators: Input validation for host, port and timeouts
- Threading: Event queue used to multiplex input and background signals
"""
