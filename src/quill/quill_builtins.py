"""Default native functions available in the Quill global scope."""

from typing import Any, Callable, List

from quill.quill_error import (
    QuillInvalidOperationError, QuillMissingArgumentError, QuillUnexpectedArgumentError
)
from quill.quill_value import NONE, QuillArguments, type_name


class QuillBuiltinFunctions:
    """Native implementations of the builtin functions."""

    def get_functions(self) -> dict[str, Callable[[QuillArguments], Any]]:
        """Return dictionary of builtin function implementations."""
        return {
            'arguments': self._builtin_arguments,
            'assert_eq': self._builtin_assert_eq,
            'len': self._builtin_len,
            'range': self._builtin_range,
            'repr': self._builtin_repr,
            'str': self._builtin_str,
            'type': self._builtin_type,
        }

    def _expect(self, args: QuillArguments, *names: str) -> List[Any]:
        """
        Extract exactly the given positional parameters from native call arguments.

        Raises:
            QuillUnexpectedArgumentError: If there are surplus or named arguments
            QuillMissingArgumentError: If an argument is missing
        """
        for index, item in enumerate(args.items):
            if item.name is not None or index >= len(names):
                raise QuillUnexpectedArgumentError(
                    index, item.name, line=item.line, column=item.column, source_file=item.source_file
                )

        values = list(args.positional)
        if len(values) < len(names):
            raise QuillMissingArgumentError(names[len(values)])

        return values

    def _builtin_arguments(self, args: QuillArguments) -> QuillArguments:
        """Capture the call's own arguments as a value."""
        return QuillArguments(list(args.items))

    def _builtin_assert_eq(self, args: QuillArguments) -> Any:
        left, right = self._expect(args, 'left', 'right')
        if left != right:
            raise QuillInvalidOperationError(f"equality assertion failed: {left!r} != {right!r}")

        return NONE

    def _builtin_len(self, args: QuillArguments) -> int:
        [value] = self._expect(args, 'value')
        try:
            return len(value)

        except TypeError as e:
            raise QuillInvalidOperationError(f"{type_name(value)} has no length") from e

    def _builtin_range(self, args: QuillArguments) -> List[int]:
        """range(end) or range(start, end) with an optional named step."""
        positional_count = 0
        for index, item in enumerate(args.items):
            if item.name is None:
                positional_count += 1

            if positional_count > 2 or item.name not in (None, 'step'):
                raise QuillUnexpectedArgumentError(
                    index, item.name, line=item.line, column=item.column, source_file=item.source_file
                )

        positional = args.positional
        if not positional:
            raise QuillMissingArgumentError('end')

        step = args.named.get('step', 1)
        start, end = (0, positional[0]) if len(positional) == 1 else positional
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in (start, end, step)):
            raise QuillInvalidOperationError("range expects integers")

        if step == 0:
            raise QuillInvalidOperationError("range step must not be zero")

        return list(range(start, end, step))

    def _builtin_repr(self, args: QuillArguments) -> str:
        [value] = self._expect(args, 'value')
        return repr(value)

    def _builtin_str(self, args: QuillArguments) -> str:
        [value] = self._expect(args, 'value')
        if value is NONE:
            return ""

        return str(value)

    def _builtin_type(self, args: QuillArguments) -> str:
        [value] = self._expect(args, 'value')
        return type_name(value)
