"""
toolgate capability modules.

Each module contributes a ToolGroup; ``server.build_registry`` picks the
groups for a profile and registers their tools.
"""

from toolgate.tools.base import ToolGroup
from toolgate.tools.filesystem import FilesystemTools
from toolgate.tools.git import GitTools
from toolgate.tools.github import GitHubTools
from toolgate.tools.gitlab import GitLabTools
from toolgate.tools.logs import LogTools
from toolgate.tools.nodejs import NodeTools
from toolgate.tools.python import PythonTools
from toolgate.tools.remote import RemoteTools
from toolgate.tools.shell import ShellTools
from toolgate.tools.testing import TestingTools

__all__ = [
    "ToolGroup",
    "RemoteTools",
    "FilesystemTools",
    "ShellTools",
    "GitTools",
    "NodeTools",
    "PythonTools",
    "TestingTools",
    "LogTools",
    "GitHubTools",
    "GitLabTools",
]
