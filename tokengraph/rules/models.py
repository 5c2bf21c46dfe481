from typing import Literal

from pydantic import BaseModel, Field


class StoreRules(BaseModel):
    max_undo_stack: int = Field(default=50, ge=1)


class ThemeRules(BaseModel):
    default_theme: str = "light"


class ValidationRules(BaseModel):
    dimension_units: list[str] = Field(
        default_factory=lambda: ["px", "rem", "em", "%", "pt", "vw", "vh"]
    )
    font_weight_min: int = 1
    font_weight_max: int = 1000
    duplicate_scope: Literal["file", "theme"] = "file"
    check_type_mismatch: bool = False


class ExportRules(BaseModel):
    block_on_errors: bool = True


def _default_categories() -> dict[str, list[str]]:
    return {
        "colors": ["color"],
        "typography": ["fontFamily", "fontWeight", "fontStyle", "typography"],
        "dimensions": ["dimension", "number"],
        "shadows": ["shadow"],
    }


class Rules(BaseModel):
    store: StoreRules = Field(default_factory=StoreRules)
    themes: ThemeRules = Field(default_factory=ThemeRules)
    validation: ValidationRules = Field(default_factory=ValidationRules)
    categories: dict[str, list[str]] = Field(default_factory=_default_categories)
    export: ExportRules = Field(default_factory=ExportRules)
