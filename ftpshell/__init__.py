"""ftpshell - interactive FTP client.

Drives a single FTP server from a prompt: one persistent control channel,
short-lived passive-mode data channels for listings and file transfers,
and a background keep-alive that reports connection loss.
"""

__version__ = "0.1.0"
