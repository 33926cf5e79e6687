from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np

from .base import SR, Effect, EffectKind
from .delay import Delay
from .flanger import Flanger
from .lowpass import LowPass
from .reverb import Reverb

ORDER = (EffectKind.LOWPASS, EffectKind.DELAY, EffectKind.REVERB, EffectKind.FLANGER)


class EffectsChain:
    """
    Effects applied in a fixed order to the summed voices.
    The order is set at construction and is the same for every block.
    """

    def __init__(self, effects: Iterable[Effect]):
        self._effects: List[Effect] = list(effects)
        self._by_kind: Dict[EffectKind, Effect] = {}
        for fx in self._effects:
            if fx.kind in self._by_kind:
                raise ValueError(f"Duplicate effect in chain: {fx.kind.value}")
            self._by_kind[fx.kind] = fx

    @classmethod
    def default(cls, sr: int = SR) -> "EffectsChain":
        return cls([LowPass(sr), Delay(sr), Reverb(sr), Flanger(sr)])

    @property
    def order(self) -> List[EffectKind]:
        return [fx.kind for fx in self._effects]

    def __getitem__(self, kind: EffectKind) -> Effect:
        return self._by_kind[EffectKind.parse(kind)]

    def __contains__(self, kind) -> bool:
        return EffectKind.parse(kind) in self._by_kind

    def __iter__(self):
        return iter(self._effects)

    def apply_params(self, enabled: Mapping[EffectKind, bool], cutoff_step: Optional[int] = None) -> None:
        for kind, fx in self._by_kind.items():
            fx.enabled = bool(enabled.get(kind, False))
        if cutoff_step is not None and EffectKind.LOWPASS in self._by_kind:
            self._by_kind[EffectKind.LOWPASS].step = cutoff_step

    def process(self, x: np.ndarray) -> np.ndarray:
        for fx in self._effects:
            x = fx.process(x)
        return x

    def reset(self) -> None:
        for fx in self._effects:
            fx.reset()
