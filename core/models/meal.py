from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class LocalImageRef(BaseModel):
    """A picked image that has not been uploaded yet."""

    path: Path
    content_type: str = "image/jpeg"

    model_config = ConfigDict(frozen=True)


class MealSlot(BaseModel):
    index: int                          # 1-based
    name: str = ""
    image: LocalImageRef | None = None

    @property
    def has_name(self) -> bool:
        return bool(self.name.strip())

    @property
    def has_image(self) -> bool:
        return self.image is not None

    @property
    def is_blank(self) -> bool:
        return not (self.has_name or self.has_image)

    def clear(self) -> None:
        self.name = ""
        self.image = None


# ─── record field names ──────────────────────────────────────────────
PRICE_FIELD = "price"


def name_field(index: int) -> str:
    return f"meal{index}"


def image_field(index: int) -> str:
    return f"mealImage{index}"


def display_name(index: int, name: str) -> str:
    return f"{index}. {name}"
