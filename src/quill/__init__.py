"""Quill - lexical environment, closures and argument binding for an embeddable language core."""

# Main API
from quill.quill import Quill

# Exceptions (for error handling)
from quill.quill_error import (
    QuillError, QuillErrorKind, QuillUnknownVariableError, QuillMissingArgumentError,
    QuillUnexpectedArgumentError, QuillDuplicateNamedArgumentError, QuillDuplicateParameterNameError,
    QuillMalformedParameterPatternError, QuillNotCallableError, QuillInvalidOperationError,
    QuillInvalidControlFlowError, QuillMaxDepthExceededError, QuillModuleNotFoundError,
    QuillCircularImportError, QuillUnresolvedImportError
)
from quill.quill_diagnostic import QuillDiagnosticRenderer

# Value types
from quill.quill_value import (
    NONE, QuillNoneType, QuillArgument, QuillArguments, QuillClosure, QuillNativeFunction, QuillModule
)

# Lower-level components (for advanced usage)
from quill.quill_environment import QuillCell, QuillScope, QuillEnvironment
from quill.quill_pattern import QuillParameterPattern, QuillPositionalSlot, QuillNamedSlot, QuillSinkSlot
from quill.quill_binder import QuillArgumentBinder, QuillBindingPlan
from quill.quill_evaluator import QuillEvaluator
from quill.quill_call_stack import QuillCallStack
from quill.quill_module_resolver import QuillModuleLoader, QuillModuleResolver, QuillSourceModuleLoader


__all__ = [
    # Main API
    "Quill",

    # Exceptions
    "QuillError", "QuillErrorKind", "QuillUnknownVariableError", "QuillMissingArgumentError",
    "QuillUnexpectedArgumentError", "QuillDuplicateNamedArgumentError", "QuillDuplicateParameterNameError",
    "QuillMalformedParameterPatternError", "QuillNotCallableError", "QuillInvalidOperationError",
    "QuillInvalidControlFlowError", "QuillMaxDepthExceededError", "QuillModuleNotFoundError",
    "QuillCircularImportError", "QuillUnresolvedImportError", "QuillDiagnosticRenderer",

    # Value types
    "NONE", "QuillNoneType", "QuillArgument", "QuillArguments", "QuillClosure", "QuillNativeFunction",
    "QuillModule",

    # Lower-level components
    "QuillCell", "QuillScope", "QuillEnvironment", "QuillParameterPattern", "QuillPositionalSlot",
    "QuillNamedSlot", "QuillSinkSlot", "QuillArgumentBinder", "QuillBindingPlan", "QuillEvaluator",
    "QuillCallStack", "QuillModuleLoader", "QuillModuleResolver", "QuillSourceModuleLoader"
]
