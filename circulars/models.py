"""
Pydantic models for circular records.
"""

from typing import List

from pydantic import BaseModel, Field


class Circular(BaseModel):
    """
    A published circular. Immutable; `id` is unique within a list.
    """
    id: int = Field(..., description="Circular number, stable across fetches")
    name: str = Field(..., description="Display title of the circular")
    url: str = Field(..., description="Location of the circular document")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "id": 142,
                "name": "Circolare n. 142 - Sospensione attività didattiche",
                "url": "https://www.example.edu/wp-content/uploads/circolare-142.pdf"
            }
        }
    }


def circulars_to_documents(circulars: List[Circular]) -> List[dict]:
    """Serialize circulars for storage, preserving order."""
    return [circular.model_dump() for circular in circulars]


def circulars_from_documents(documents: List[dict]) -> List[Circular]:
    """Rebuild circulars from stored documents, preserving order."""
    return [Circular(**document) for document in documents]
