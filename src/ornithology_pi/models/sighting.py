"""
Sighting Model
==============

A single detected and identified bird, as produced by the camera pipeline.

Wire Form:
    {"uuid": "0b6c...", "species": "Eurasian Blue Tit"}

The photo of a sighting is stored on disk as ``<species>_<uuid>.jpg``
inside the sightings directory. Only the file name is derived here; the
thumbnail service owns the directory and the actual read.
"""

from pydantic import BaseModel, Field


class Sighting(BaseModel):
    """
    Immutable record of one sighting.

    Attributes:
        uuid: Opaque identifier. Not guaranteed unique across the log.
        species: Species label reported by the classifier
    """

    uuid: str = Field(
        default="",
        description="Opaque sighting identifier",
    )

    species: str = Field(
        default="",
        description="Identified species label",
    )

    class Config:
        """Pydantic model configuration."""

        frozen = True

    @classmethod
    def empty(cls) -> "Sighting":
        """Placeholder used when an identifier matches nothing."""
        return cls()

    @property
    def photo_filename(self) -> str:
        """File name of the stored photo."""
        return f"{self.species}_{self.uuid}.jpg"
