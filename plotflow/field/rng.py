from typing import List, MutableSequence, Tuple, TypeVar

T = TypeVar("T")

_MASK = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


def mulberry32(state: int) -> Tuple[float, int]:
    """Advance a mulberry32 state by one draw.

    Parameters
    ----------
    state : int
        Current 32 bit state (any int, it is reduced mod 2**32).

    Returns
    -------
    (value, new_state) : tuple
        value in [0, 1) and the state to pass to the next call.
    """
    state = (state + 0x6D2B79F5) & _MASK
    t = _imul(state ^ (state >> 15), state | 1)
    t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
    return ((t ^ (t >> 14)) & _MASK) / 4294967296.0, state


class Mulberry32:
    """Seeded mulberry32 generator owning its own state.

    The draw sequence is bit identical to the 32 bit integer reference
    algorithm, so a seed reproduces the same stream on any platform.
    """

    def __init__(self, seed: int):
        self.state = int(seed) & _MASK
        self.calls = 0

    def next(self) -> float:
        value, self.state = mulberry32(self.state)
        self.calls += 1
        return value

    def uniform(self, low: float, high: float) -> float:
        return low + self.next() * (high - low)

    def randint(self, n: int) -> int:
        """Integer in [0, n)."""
        return int(self.next() * n)

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        # Fisher-Yates from the end, in place
        for i in range(len(items) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            items[i], items[j] = items[j], items[i]
        return items

    def sample(self, n: int) -> List[float]:
        return [self.next() for _ in range(n)]
