"""FTP protocol engine for ftpshell.

This module handles all protocol-level functionality:
- ResponseReader: Assembles single- and multi-line status replies
- Address codec: Decodes PASV and EPSV data addresses
- ControlChannel: Serialized command/reply exchanges on the control socket
- DataChannel: Passive-mode transfer lifecycle with progress reporting
- KeepAliveLoop: Background NOOP probe with connection-loss detection
- Session and command procedures built on top of the above
- Exceptions: FTP-specific error types
"""
