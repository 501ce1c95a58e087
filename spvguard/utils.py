from typing import Generic, Iterable, Optional, TypeVar

_T = TypeVar("_T")


class OrderedSet(Generic[_T], dict[_T, None]):
    """
    A set which iterates in insertion order, e.g. the users of an id in
    module order. Only the operations this package needs are provided.
    """

    def __init__(self, iterable: Optional[Iterable[_T]] = None):
        super().__init__()
        for item in iterable or ():
            self.add(item)

    def __repr__(self):
        return "{" + ", ".join(repr(k) for k in self) + "}"

    def get(self, *args, **kwargs):
        raise RuntimeError("OrderedSet has no get()")

    def add(self, item: _T) -> None:
        self[item] = None
