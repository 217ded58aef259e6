"""
Clocked pipeline register model.

A register holds a current (value, valid) pair that stage logic reads,
and an optional next pair that stage logic drives. Nothing changes until
``clock`` commits the next pair, so every stage of a tick sees the same
snapshot no matter in which order the stages are evaluated.
"""

from typing import Any, Generic, NamedTuple, Optional, Tuple, TypeVar

T = TypeVar("T")


class RegisterSnapshot(NamedTuple):
    """Immutable view of a register's current contents."""
    value: Any
    valid: bool


class PipelineRegister(Generic[T]):
    """
    Value + valid flag cell with synchronous reset.

    A register that is not driven during a tick keeps its contents, which
    is how retained state (the integral accumulator) is modelled: it is
    only driven inside the branch that updates it.

    Example:
        >>> reg = PipelineRegister(0)
        >>> reg.drive(5, valid=True)
        >>> reg.value
        0
        >>> reg.clock()
        >>> reg.value, reg.valid
        (5, True)
    """

    def __init__(self, reset_value: T, name: str = ""):
        """
        Initialize register in its reset state.

        Args:
            reset_value: Value loaded on reset (and at creation)
            name: Optional label used in snapshots and repr
        """
        self._reset_value = reset_value
        self._name = name
        self._value: T = reset_value
        self._valid: bool = False
        self._next: Optional[Tuple[T, bool]] = None

    @property
    def value(self) -> T:
        """Current (committed) value."""
        return self._value

    @property
    def valid(self) -> bool:
        """Current (committed) valid flag."""
        return self._valid

    @property
    def name(self) -> str:
        return self._name

    @property
    def pending(self) -> bool:
        """True if a next value has been driven this tick."""
        return self._next is not None

    def drive(self, value: T, valid: bool = True) -> None:
        """Set the value to commit on the next clock."""
        self._next = (value, bool(valid))

    def clear(self) -> None:
        """Drive the reset value with valid deasserted."""
        self.drive(self._reset_value, False)

    def clock(self, reset: bool = False) -> None:
        """
        Commit the driven value.

        Args:
            reset: Synchronous reset; overrides any driven value
        """
        if reset:
            self._value = self._reset_value
            self._valid = False
        elif self._next is not None:
            self._value, self._valid = self._next
        self._next = None

    def snapshot(self) -> RegisterSnapshot:
        return RegisterSnapshot(self._value, self._valid)

    def __repr__(self) -> str:
        label = f"{self._name}=" if self._name else ""
        return f"PipelineRegister({label}{self._value!r}, valid={self._valid})"
