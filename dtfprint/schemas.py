from pydantic import BaseModel, Field, field_validator

from dtfprint.canvas.types import PhysicalSpec
from dtfprint.config import settings


class GenerationRequest(BaseModel):
    prompt: str = Field(min_length=1)
    variation_count: int = Field(default=1, ge=1, le=settings.variation_count_max)
    remove_background: bool = False
    vectorize: bool = False
    width_in: float = Field(default=settings.default_width_in, gt=0)
    height_in: float = Field(default=settings.default_height_in, gt=0)

    @field_validator("prompt")
    @classmethod
    def _strip_prompt(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("prompt must not be blank")
        return cleaned

    def generator_prompt(self) -> str:
        return f"{self.prompt}\n{settings.generator_prompt_suffix}"

    def physical_spec(self) -> PhysicalSpec:
        return PhysicalSpec(
            width_in=self.width_in,
            height_in=self.height_in,
            dpi=settings.print_dpi,
            bleed_in=settings.print_bleed_in,
            margin_fraction=settings.print_margin_fraction,
            safety_margin_in=settings.print_safety_margin_in,
        )
