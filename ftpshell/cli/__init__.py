"""Interactive shell for ftpshell.

This module provides the operator-facing surface:
- Command table: Explicit mapping from command word to handler and help
- Driver: Read-dispatch loop multiplexing input and connection loss
- Progress: Console rendering of transfer progress
"""
