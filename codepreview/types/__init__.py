from codepreview.types.value import Value, ValueKind, coerce
from codepreview.types.environment import Environment, NotFound
from codepreview.types.output import OutputKind, OutputLine, OutputSink, RunOutcome, RunResult

__all__ = [
    "Value",
    "ValueKind",
    "coerce",
    "Environment",
    "NotFound",
    "OutputKind",
    "OutputLine",
    "OutputSink",
    "RunOutcome",
    "RunResult",
]
