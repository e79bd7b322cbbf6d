"""Domain enums for the inspection session lifecycle."""

from enum import StrEnum


class SessionState(StrEnum):
    """States of an inspection session."""

    SETUP = "SETUP"
    CAPTURING = "CAPTURING"
    REVIEW = "REVIEW"
    FINALIZED = "FINALIZED"
    DISCARDED = "DISCARDED"


class IdentificationMode(StrEnum):
    """When asset/client identification is collected."""

    UPFRONT = "upfront"
    DEFERRED = "deferred"
