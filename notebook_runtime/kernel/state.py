"""Process-scoped runtime state shared by every dispatcher call."""
from dataclasses import dataclass, field

from ..execution.python import PythonInterpreter
from .counters import ExecutionCounters


@dataclass
class RuntimeState:
    """
    Counters and engine handles that live as long as the runtime.

    Owned explicitly and passed to the dispatcher, so tests can build a
    fresh state per case instead of sharing a global one.
    """
    counters: ExecutionCounters = field(default_factory=ExecutionCounters)
    python: PythonInterpreter = field(default_factory=PythonInterpreter)

    @classmethod
    def from_settings(cls, settings) -> "RuntimeState":
        return cls(
            python=PythonInterpreter(
                enabled=settings.PYTHON_INPROCESS_ENABLED,
                preload_modules=settings.preload_modules_list,
            ),
        )

    def reset(self) -> None:
        """Zero every counter and discard the interpreter namespace."""
        self.counters.reset()
        self.python.reset()
