from __future__ import annotations

import abc


class GenerationError(RuntimeError):
    """The external text service failed or returned nothing usable."""


class TextGenerator(abc.ABC):
    """Single-turn, stateless text generation: one prompt in, one string out."""

    name: str = "generator"

    @abc.abstractmethod
    def generate(self, prompt: str) -> str:
        ...

    def close(self) -> None:
        pass
