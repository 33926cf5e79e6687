import numpy as np

from .base import SR, DelayLine, Effect, EffectKind

DELAY_SECONDS = 0.25
DEFAULT_FEEDBACK = 0.5
MAX_FEEDBACK = 0.95


class Delay(Effect):
    """
    Feedback echo: y = x + g * y[n - D], D = 250 ms.
    An impulse comes back every D samples, scaled by g each time.
    """
    kind = EffectKind.DELAY

    def __init__(self, sr: int = SR, feedback: float = DEFAULT_FEEDBACK,
                 seconds: float = DELAY_SECONDS, enabled: bool = False):
        super().__init__(sr, enabled)
        self.line = DelayLine(int(round(seconds * self.sr)))
        self.feedback = feedback

    @property
    def length(self) -> int:
        return self.line.length

    @property
    def feedback(self) -> float:
        return self._g

    @feedback.setter
    def feedback(self, g: float) -> None:
        # g < 1 keeps the echo train summable
        self._g = float(np.clip(g, 0.0, MAX_FEEDBACK))

    def _process(self, x: np.ndarray) -> np.ndarray:
        g = self._g

        def step(chunk, delayed):
            y = chunk + g * delayed
            return y, y

        return self.line.run(x, step)

    def reset(self) -> None:
        super().reset()
        self.line.clear()
