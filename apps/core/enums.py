from enum import Enum


class SurveyRole(str, Enum):
    """Structural role of an actor relative to one survey (never stored)."""

    CREATOR = "creator"
    RESPONDENT = "respondent"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value
