"""Shared constants and a controllable clock for the test suite."""

TEST_SECRET = "test-signing-secret-0123456789abcdef"
STRONG_PASSWORD = "CorrectHorse9"


class FakeClock:
    """Callable time source. Starts at a fixed epoch; advance() moves it forward."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
