"""Result schema for a bird identification."""

from pydantic import BaseModel, ConfigDict, Field


class BirdIdentification(BaseModel):
    """Structured data representing the result of bird species identification"""

    model_config = ConfigDict(extra="forbid", strict=True)

    reliabilityScore: int = Field(
        ge=0,
        le=100,
        description=(
            "Confidence score indicating the reliability of the bird identification "
            "(0-100 scale, where 100 is most certain)"
        ),
    )
    birdName: str = Field(
        description="The identified bird species name (scientific name or common name)",
    )
    description: str = Field(
        description=(
            "Detailed description including bird characteristics, habitat, identification "
            "points, and other relevant information"
        ),
    )
