from noise import snoise2

from plotflow.field.rng import Mulberry32

# keeps offset coordinates well inside float32 precision of snoise2
_OFFSET_RANGE = 1024.0


class SimplexNoise:
    """Seeded 2D simplex noise returning values in [-1, 1].

    snoise2 has no seed of its own, so every seed maps to a fixed offset of
    the sampling plane drawn from a mulberry32 stream.
    """

    def __init__(self, seed: int):
        rng = Mulberry32(seed)
        self.seed = seed
        self.offset_x = rng.next() * _OFFSET_RANGE
        self.offset_y = rng.next() * _OFFSET_RANGE

    def __call__(self, x: float, y: float) -> float:
        return snoise2(x + self.offset_x, y + self.offset_y)

    def fractal(self, x: float, y: float, octaves: int = 1) -> float:
        """Sum of octaves with halving amplitude and doubling frequency."""
        n = 0.0
        amp = 1.0
        freq = 1.0
        for _ in range(int(octaves)):
            n += amp * self(x * freq, y * freq)
            amp *= 0.5
            freq *= 2.0
        return n
