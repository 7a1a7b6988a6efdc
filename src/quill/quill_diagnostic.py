"""Rendering of classified Quill errors into user-facing diagnostics."""

from typing import List, Tuple

from quill.quill_error import QuillError


class QuillDiagnosticRenderer:
    """
    Formats a QuillError with its location and, when the source text is known,
    an excerpt of the source with a marker under the failing column.
    """

    def __init__(self, before: int = 2, after: int = 1, marker: str = "^") -> None:
        """
        Initialize renderer.

        Args:
            before: Number of source lines to show before the error line
            after: Number of source lines to show after the error line
            marker: Character used to mark the error column
        """
        self.before = before
        self.after = after
        self.marker = marker

    def render(self, error: QuillError, source: str | None = None) -> str:
        """
        Render an error as a multi-line diagnostic.

        Args:
            error: The error to render
            source: Source text the error's line and column refer to

        Returns:
            The formatted diagnostic
        """
        parts = [f"Error: {error.describe()}"]

        if error.line is not None:
            location = f"Line {error.line}"
            if error.column is not None:
                location += f", Column {error.column}"

            if error.source_file:
                location = f"{error.source_file}: {location}"

            parts.append(f"Location: {location}")

            if source is not None:
                parts.append(f"\nSource Context:\n{self._format_context_with_marker(source, error.line, error.column)}")

        if error.context:
            parts.append(f"Context: {error.context}")

        if error.suggestion:
            parts.append(f"Suggestion: {error.suggestion}")

        return "\n".join(parts)

    def _get_context_lines(self, source: str, line_num: int) -> List[Tuple[int, str]]:
        lines = source.split('\n')
        start_line = max(1, line_num - self.before)
        end_line = min(len(lines), line_num + self.after)
        return [(i, lines[i - 1]) for i in range(start_line, end_line + 1)]

    def _format_context_with_marker(self, source: str, line_num: int, column: int | None) -> str:
        context_lines = self._get_context_lines(source, line_num)
        if not context_lines:
            return "(no context available)"

        line_num_width = len(str(max(ln for ln, _ in context_lines)))

        result_lines = []
        for ln, content in context_lines:
            indicator = "→" if ln == line_num else " "
            result_lines.append(f"  {indicator} {ln:>{line_num_width}}: {content}")

            if ln == line_num and column is not None:
                # "  " + indicator + " " + line number + ": " then the 1-indexed column
                padding = 2 + 1 + 1 + line_num_width + 2 + (column - 1)
                result_lines.append(" " * padding + self.marker)

        return "\n".join(result_lines)
