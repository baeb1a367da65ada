"""Virtual drivetrain.

The rear index walks the cassette: index 0 is the smallest cog (hardest gear),
the last index the largest cog (easiest gear). Out-of-range selections are
ignored rather than raised, so a stray shifter press can never break a ride.
"""


class GearSystem:
    """Chainring/cassette selection with ratio arithmetic."""

    def __init__(self, chainrings: list[int], cassette: list[int]):
        if not chainrings:
            raise ValueError("At least one chainring is required")
        if not cassette:
            raise ValueError("At least one cassette cog is required")
        self._chainrings = list(chainrings)
        self._cassette = list(cassette)
        self._front_index = 0
        self._rear_index = len(self._cassette) // 2  # start mid-cassette

    @property
    def front_index(self) -> int:
        return self._front_index

    @property
    def rear_index(self) -> int:
        return self._rear_index

    @property
    def chainring(self) -> int:
        return self._chainrings[self._front_index]

    @property
    def cog(self) -> int:
        return self._cassette[self._rear_index]

    def ratio(self) -> float:
        return self.chainring / self.cog

    def set_front(self, index: int) -> None:
        if 0 <= index < len(self._chainrings):
            self._front_index = index

    def set_rear(self, index: int) -> None:
        if 0 <= index < len(self._cassette):
            self._rear_index = index

    def shift_up(self) -> None:
        """Shift to a harder gear (smaller cog)."""
        if self._rear_index > 0:
            self._rear_index -= 1

    def shift_down(self) -> None:
        """Shift to an easier gear (larger cog)."""
        if self._rear_index < len(self._cassette) - 1:
            self._rear_index += 1

    def label(self) -> str:
        return f"{self.chainring}x{self.cog}"

    def __str__(self) -> str:
        return self.label()
