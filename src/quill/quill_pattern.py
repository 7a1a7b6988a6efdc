"""Parameter patterns describing the formal parameters of a Quill closure."""

from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from quill.quill_ast import QuillASTNode, QuillIdentifier, QuillNamed, QuillSpread
from quill.quill_error import QuillDuplicateParameterNameError, QuillMalformedParameterPatternError


@dataclass(frozen=True)
class QuillPositionalSlot:
    """A parameter that can only be filled by a positional argument."""
    name: str


@dataclass(frozen=True)
class QuillNamedSlot:
    """
    A parameter declared as `name: default`.

    It is filled by a matching named argument, else by the next positional
    argument, else by evaluating its default expression.
    """
    name: str
    default: QuillASTNode


@dataclass(frozen=True)
class QuillSinkSlot:
    """The `..name` parameter collecting every argument no other slot takes."""
    name: str | None = None


QuillSlot = Union[QuillPositionalSlot, QuillNamedSlot]


@dataclass(frozen=True)
class QuillParameterPattern:
    """
    Ordered parameter slots plus at most one sink.

    Construct patterns with from_ast (or from_slots) so the definition-time rules
    are checked: parameter names are unique and there is at most one sink.
    """
    slots: Tuple[QuillSlot, ...] = ()
    sink: QuillSinkSlot | None = None

    @classmethod
    def from_slots(
        cls,
        slots: Sequence[QuillSlot],
        sink: QuillSinkSlot | None = None
    ) -> 'QuillParameterPattern':
        """
        Build a pattern from already-classified slots.

        Raises:
            QuillDuplicateParameterNameError: If two slots share a name
        """
        seen: List[str] = []
        names = [slot.name for slot in slots]
        if sink is not None and sink.name is not None:
            names.append(sink.name)

        for name in names:
            if name in seen:
                raise QuillDuplicateParameterNameError(name)

            seen.append(name)

        return cls(tuple(slots), sink)

    @classmethod
    def from_ast(cls, params: Sequence[QuillASTNode]) -> 'QuillParameterPattern':
        """
        Classify parameter AST nodes into a pattern.

        Args:
            params: Parameter nodes: identifiers, named pairs and at most one spread

        Returns:
            The parameter pattern

        Raises:
            QuillMalformedParameterPatternError: If a node is not a valid parameter
            QuillDuplicateParameterNameError: If a name is declared twice
        """
        slots: List[QuillSlot] = []
        sink: QuillSinkSlot | None = None
        seen: List[str] = []

        def claim(name: str, node: QuillASTNode) -> None:
            if name in seen:
                raise QuillDuplicateParameterNameError(name).with_location(node)

            seen.append(name)

        for param in params:
            match param:
                case QuillIdentifier(name=name):
                    claim(name, param)
                    slots.append(QuillPositionalSlot(name))

                case QuillNamed(name=QuillIdentifier(name=name), value=default):
                    claim(name, param.name)
                    slots.append(QuillNamedSlot(name, default))

                case QuillNamed():
                    raise QuillMalformedParameterPatternError("expected identifier").with_location(param.name)

                case QuillSpread(target=None):
                    if sink is not None:
                        raise QuillMalformedParameterPatternError(
                            "only one argument sink is allowed"
                        ).with_location(param)

                    sink = QuillSinkSlot()

                case QuillSpread(target=QuillIdentifier(name=name)):
                    if sink is not None:
                        raise QuillMalformedParameterPatternError(
                            "only one argument sink is allowed"
                        ).with_location(param)

                    claim(name, param.target)
                    sink = QuillSinkSlot(name)

                case QuillSpread():
                    raise QuillMalformedParameterPatternError("expected identifier").with_location(param.target)

                case _:
                    raise QuillMalformedParameterPatternError(
                        "expected identifier, named pair or argument sink"
                    ).with_location(param)

        return cls(tuple(slots), sink)

    def names(self) -> List[str]:
        """Get every name the pattern binds, in declaration order."""
        names = [slot.name for slot in self.slots]
        if self.sink is not None and self.sink.name is not None:
            names.append(self.sink.name)

        return names

    def __str__(self) -> str:
        parts: List[str] = []
        for slot in self.slots:
            match slot:
                case QuillPositionalSlot():
                    parts.append(slot.name)

                case QuillNamedSlot():
                    parts.append(f"{slot.name}: ..")

        if self.sink is not None:
            parts.append(f"..{self.sink.name or ''}")

        return f"({', '.join(parts)})"
