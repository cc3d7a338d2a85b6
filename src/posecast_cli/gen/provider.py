from __future__ import annotations

from abc import ABC, abstractmethod

from .types import GenerationRequest, ImageData, ResponsePart


class DescriberProvider(ABC):
    @property
    @abstractmethod
    def provider_id(self) -> str: ...

    @abstractmethod
    async def describe(self, image: ImageData, instruction: str) -> str:
        """Return a descriptive paragraph for `image` following `instruction`."""
        raise NotImplementedError


class ImageProvider(ABC):
    @property
    @abstractmethod
    def provider_id(self) -> str: ...

    @abstractmethod
    async def generate(self, req: GenerationRequest) -> list[ResponsePart]:
        """Run one generation call and return the raw response parts."""
        raise NotImplementedError
