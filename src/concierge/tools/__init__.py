"""Tools exposed to agents."""

from concierge.tools.base import BackendTool, BaseTool
from concierge.tools.internal import ScratchPad
from concierge.tools.registry import ToolRegistry
from concierge.tools.task import TaskTool

__all__ = ["BackendTool", "BaseTool", "ScratchPad", "TaskTool", "ToolRegistry"]
