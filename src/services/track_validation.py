"""
Track name and payload admissibility.

Two policies are supported, one per deployment (``TRACK_NAME_POLICY``):

- ``free_form``: any trimmed, non-empty name up to the configured length;
  the optional ``data`` payload is an arbitrary JSON object.
- ``registry``: the name must be one of the known activity types and the
  payload must match that type's key allow-list, with values of the declared
  primitive type. An absent payload is always valid.

Validators are pure: they normalize and raise TrackValidationError, they never
touch the database.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Protocol

from core.config import Settings
from services.exceptions import TrackValidationError


class PayloadType(StrEnum):
    """Primitive JSON types a payload value may have."""

    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"


class TrackType(StrEnum):
    """Activity types recognized by the registry policy."""

    TEST_TRACK = "TEST_TRACK"
    CONSUMED_WATER = "CONSUMED_WATER"
    CONSUMED_ALCOHOL = "CONSUMED_ALCOHOL"
    CONSUMED_FOOD = "CONSUMED_FOOD"
    CONSUMED_CAFFEINE = "CONSUMED_CAFFEINE"
    CONSUMED_CIGARETTE = "CONSUMED_CIGARETTE"
    CONSUMED_SNUFF = "CONSUMED_SNUFF"
    EXCRETED_URINE = "EXCRETED_URINE"
    EXCRETED_FECES = "EXCRETED_FECES"
    EXCRETED_VOMIT = "EXCRETED_VOMIT"
    HAIRCUT = "HAIRCUT"
    BLOW_NOSE = "BLOW_NOSE"
    BRUSH_TEETH = "BRUSH_TEETH"
    SHOWER = "SHOWER"
    SHAVE = "SHAVE"
    HEARTACHE = "HEARTACHE"
    HEADACHE = "HEADACHE"
    MASTURBATE = "MASTURBATE"
    SEX = "SEX"
    CLIP_NAILS = "CLIP_NAILS"
    COOKING = "COOKING"
    CLEANING = "CLEANING"
    FART = "FART"
    POP_ZIT = "POP_ZIT"


_N = PayloadType.NUMBER
_B = PayloadType.BOOLEAN

# Allowed payload keys per activity type. Read-only; pass a different mapping to
# TrackTypeRegistry to extend it.
TRACK_TYPE_SCHEMAS: Mapping[str, Mapping[str, PayloadType]] = MappingProxyType({
    TrackType.TEST_TRACK: {},
    TrackType.CONSUMED_WATER: {"litresProduct": _N},
    TrackType.CONSUMED_ALCOHOL: {"litresProduct": _N, "alcoholPercentage": _N},
    TrackType.CONSUMED_FOOD: {"gramsProduct": _N, "caloriesTotal": _N},
    TrackType.CONSUMED_CAFFEINE: {"gramsProduct": _N, "gramsCaffeine": _N},
    TrackType.CONSUMED_CIGARETTE: {"gramsProduct": _N, "gramsNicotine": _N},
    TrackType.CONSUMED_SNUFF: {"gramsProduct": _N, "gramsNicotine": _N},
    TrackType.EXCRETED_URINE: {"litres": _N},
    TrackType.EXCRETED_FECES: {"litres": _N},
    TrackType.EXCRETED_VOMIT: {"litres": _N},
    TrackType.HAIRCUT: {"metersCut": _N, "professional": _B},
    TrackType.BLOW_NOSE: {},
    TrackType.BRUSH_TEETH: {},
    TrackType.SHOWER: {"temperature": _N, "liters": _N, "tub": _B},
    TrackType.SHAVE: {"professional": _B},
    TrackType.HEARTACHE: {},
    TrackType.HEADACHE: {},
    TrackType.MASTURBATE: {"orgasm": _N},
    TrackType.SEX: {"youOrgasm": _N, "theyOrgasm": _N},
    TrackType.CLIP_NAILS: {"cutCentimeters": _N},
    TrackType.COOKING: {},
    TrackType.CLEANING: {},
    TrackType.FART: {},
    TrackType.POP_ZIT: {"resqueeze": _B},
})


def matches_payload_type(value: Any, expected: PayloadType) -> bool:
    """
    Check a JSON value against a primitive type.

    bool is a subclass of int in Python, so booleans are excluded from NUMBER.
    """
    if expected is PayloadType.BOOLEAN:
        return isinstance(value, bool)
    if expected is PayloadType.NUMBER:
        return isinstance(value, int | float) and not isinstance(value, bool)
    return isinstance(value, str)


class TrackValidator(Protocol):
    """Decides whether a track name and payload are admissible."""

    def validate(self, track_name: str, data: Mapping[str, Any] | None) -> str:
        """Return the normalized name, or raise TrackValidationError."""
        ...


def _normalize_name(track_name: str, max_length: int) -> str:
    trimmed = track_name.strip()
    if not trimmed:
        raise TrackValidationError("trackName must be a non-empty string.")
    if len(trimmed) > max_length:
        raise TrackValidationError(
            f"trackName exceeds maximum length of {max_length} characters "
            f"(got {len(trimmed)} characters).",
        )
    return trimmed


@dataclass(frozen=True)
class FreeFormTrackValidator:
    """Any non-empty label within the length bound; payload is not inspected."""

    max_length: int = 100

    def validate(self, track_name: str, data: Mapping[str, Any] | None) -> str:  # noqa: ARG002
        """Trim and bound the name."""
        return _normalize_name(track_name, self.max_length)


@dataclass(frozen=True)
class TrackTypeRegistry:
    """Lookup table of activity types and their payload allow-lists."""

    schemas: Mapping[str, Mapping[str, PayloadType]] = field(
        default_factory=lambda: TRACK_TYPE_SCHEMAS,
    )

    def schema_for(self, track_name: str) -> Mapping[str, PayloadType] | None:
        """Return the payload schema for a type, or None if the type is unknown."""
        return self.schemas.get(track_name)


@dataclass(frozen=True)
class RegistryTrackValidator:
    """Only registered activity types, with strictly typed payloads."""

    registry: TrackTypeRegistry = field(default_factory=TrackTypeRegistry)
    max_length: int = 100

    def validate(self, track_name: str, data: Mapping[str, Any] | None) -> str:
        """Check membership in the registry and the payload against its schema."""
        name = _normalize_name(track_name, self.max_length)
        schema = self.registry.schema_for(name)
        if schema is None:
            raise TrackValidationError(f"'{name}' is not a recognized track type.")

        if data is None:
            return name

        for key, value in data.items():
            expected = schema.get(key)
            if expected is None:
                raise TrackValidationError(
                    f"'{key}' is not an allowed data field for {name}.",
                )
            if not matches_payload_type(value, expected):
                raise TrackValidationError(
                    f"Data field '{key}' of {name} must be of type {expected.value}.",
                )
        return name


def get_track_validator(settings: Settings) -> TrackValidator:
    """Build the validator for the deployment's configured policy."""
    if settings.track_name_policy == "registry":
        return RegistryTrackValidator(max_length=settings.max_track_name_length)
    return FreeFormTrackValidator(max_length=settings.max_track_name_length)
