"""Run-time collaborators of the engine: the input bridge and the Python backend."""

from codepreview.runtime.input_coordinator import InputCoordinator, InputState, PendingInputRequest

__all__ = ["InputCoordinator", "InputState", "PendingInputRequest"]
