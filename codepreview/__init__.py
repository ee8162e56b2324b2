# Core type aliases for the codepreview engine.
#
# Two cooperating subsystems live here:
# - reader:      the lexical classifier used for highlighting (pure, total).
# - evaluation:  the pseudo-execution engine that turns a buffer into a
#                transcript without a real compiler/interpreter.
# The runtime package bridges user input and the optional Python backend.

import logging
from typing import Callable

# Name of the language a buffer is written in ("python", "java", "html", ...)
LanguageId = str

# Shell callback invoked for every line appended to an OutputSink
LineListener = Callable[..., None]

logging.getLogger(__name__).addHandler(logging.NullHandler())
