"""
toolgate - A tool-dispatch server for coding agents.

Advertises a catalog of schema-validated tools (filesystem, shell, git,
npm, pip, test runners, logs, GitHub Actions, GitLab) and runs them on
request over a line-delimited JSON-RPC channel on stdin/stdout.

Every call goes through one gateway:
- resolve the tool by name
- validate the arguments against its contract
- run the handler
- wrap success or failure in the same result envelope
"""

__version__ = "0.1.0"

from toolgate.config import Config, ConfigError, Settings
from toolgate.gateway import ToolDispatcher, ToolRegistry, ToolResult

__all__ = [
    "Config",
    "ConfigError",
    "Settings",
    "ToolDispatcher",
    "ToolRegistry",
    "ToolResult",
    "__version__",
]
