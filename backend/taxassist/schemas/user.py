# taxassist/schemas/user.py
from pydantic import BaseModel
from typing import Optional


class LanguageIn(BaseModel):
    """Request model for updating the preferred language."""
    language: Optional[str] = None  # one of models.user.LANGUAGES


class LanguageOut(BaseModel):
    success: bool
    language: str
