from typing import Optional, Union


class Unambiguous:
    offset: int

    __slots__ = ("offset",)

    def __init__(self, offset: int):
        self.offset = offset

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Unambiguous):
            return self.offset == other.offset
        return False  # pragma: no cover

    def __repr__(self) -> str:
        return f"Unambiguous({self.offset})"


class Gap:
    """A local time skipped by a transition.
    Using ``before`` places the local time at an instant before the gap,
    using ``after`` places it at an instant after the gap.
    """

    before: int
    after: int

    __slots__ = ("before", "after")

    def __init__(self, before: int, after: int):
        self.before = before
        self.after = after

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Gap):
            return self.before == other.before and self.after == other.after
        return False  # pragma: no cover

    def __repr__(self) -> str:
        return f"Gap({self.before}, {self.after})"


class Fold:
    """A local time repeated by a transition.
    ``before`` is the offset of the first occurrence, ``after`` the second.
    """

    before: int
    after: int

    __slots__ = ("before", "after")

    def __init__(self, before: int, after: int):
        self.before = before
        self.after = after

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Fold):
            return self.before == other.before and self.after == other.after
        return False  # pragma: no cover

    def __repr__(self) -> str:
        return f"Fold({self.before}, {self.after})"


Ambiguity = Union[Unambiguous, Gap, Fold]


class OffsetInfo:
    """The offset period an exact time falls in.

    ``transition`` is the epoch second at which this period started,
    or ``None`` if it isn't known (e.g. a zone with a fixed offset).
    """

    offset: int
    transition: Optional[int]
    is_dst: bool

    __slots__ = ("offset", "transition", "is_dst")

    def __init__(self, offset: int, transition: Optional[int], is_dst: bool):
        self.offset = offset
        self.transition = transition
        self.is_dst = is_dst

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OffsetInfo):
            return (
                self.offset == other.offset
                and self.transition == other.transition
                and self.is_dst == other.is_dst
            )
        return False  # pragma: no cover

    def __repr__(self) -> str:
        return (
            f"OffsetInfo({self.offset}, {self.transition}, {self.is_dst})"
        )
