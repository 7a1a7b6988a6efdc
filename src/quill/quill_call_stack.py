"""Call stack tracking for Quill closure calls."""

from dataclasses import dataclass
from typing import Any, Dict, List


class QuillCallStack:
    """
    Call stack for tracking closure calls, enforcing the depth limit and giving
    errors a readable trace.
    """

    @dataclass
    class CallFrame:
        """Represents a single closure call frame."""
        function_name: str
        arguments: Dict[str, Any]
        line: int | None = None
        column: int | None = None

    def __init__(self) -> None:
        """Initialize empty call stack."""
        self.frames: List[QuillCallStack.CallFrame] = []

    def push(self, function_name: str, arguments: Dict[str, Any], line: int | None = None, column: int | None = None) -> None:
        """
        Push a new call frame onto the stack.

        Args:
            function_name: Name of the closure being called
            arguments: Dictionary of parameter names to bound values
            line: Line of the call site
            column: Column of the call site
        """
        self.frames.append(QuillCallStack.CallFrame(function_name, arguments, line, column))

    def pop(self) -> 'QuillCallStack.CallFrame | None':
        """
        Pop the top call frame from the stack.

        Returns:
            The popped frame, or None if stack is empty
        """
        if self.frames:
            return self.frames.pop()

        return None

    def depth(self) -> int:
        """Get the current call stack depth."""
        return len(self.frames)

    def format_stack_trace(self, max_frames: int = 10) -> str:
        """
        Format the call stack as a string for error messages.

        Args:
            max_frames: Maximum number of frames to include

        Returns:
            Formatted stack trace string
        """
        if not self.frames:
            return "  (no function calls)"

        lines = []
        frames_to_show = self.frames[-max_frames:]

        if len(self.frames) > max_frames:
            lines.append(f"  ... ({len(self.frames) - max_frames} more frames)")

        for i, frame in enumerate(frames_to_show):
            indent = "  " + "  " * i
            args_str = ", ".join(f"{k}={v!r}" for k, v in frame.arguments.items())
            location = f" at line {frame.line}" if frame.line is not None else ""
            lines.append(f"{indent}{frame.function_name}({args_str}){location}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"QuillCallStack(depth={len(self.frames)})"
