"""Models for AI image analysis results."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

NormalizedCoordinate = Annotated[float, Field(ge=0.0, le=1.0)]


class Composition(BaseModel):
    """Compositional style of the image."""

    type: str
    clutter_score: float = Field(ge=0.0, le=1.0)


class ColorSummary(BaseModel):
    """Dominant and accent colors as hex codes."""

    dominant_hex: list[str]
    accent_hex: list[str]


class ImageSummary(BaseModel):
    """Descriptive summary of the scene."""

    title: str = Field(min_length=1)
    description: str
    mood: str
    time_of_day: str
    composition: Composition
    colors: ColorSummary


class Directionality(BaseModel):
    """Visual flow from -1.0 (left) to 1.0 (right)."""

    score: float = Field(ge=-1.0, le=1.0)
    reasoning: str


class FacialStructure(BaseModel):
    """Permanent structural features of a person."""

    face_shape: str
    complexion_description: str
    eye_characteristics: str
    nose_structure: str
    cheek_chin_structure: str | None = None


class TransientFeatures(BaseModel):
    """Features that change over time."""

    hair_style: str | None = None
    eyewear: str | None = None
    facial_hair: str | None = None


class Identity(BaseModel):
    """A detected subject."""

    type: Literal["Person", "Pet", "Other"]
    demographics: str
    facial_structure: FacialStructure
    transient_features: TransientFeatures


class RegionOfInterest(BaseModel):
    """A salient region; ``box_2d`` is [ymin, xmin, ymax, xmax] normalized."""

    label: str
    box_2d: list[NormalizedCoordinate] = Field(min_length=4, max_length=4)
    importance_rank: int = Field(ge=1)
    saliency_score: float = Field(ge=0.0, le=1.0)


class SmartCrop(BaseModel):
    """Ranked regions used for cropping decisions."""

    regions_of_interest: list[RegionOfInterest]


class ImageAnalysis(BaseModel):
    """Structured output of the vision analysis call."""

    image_analysis: ImageSummary
    directionality: Directionality
    identities: list[Identity]
    smart_crop: SmartCrop
