"""
Patient record fields and client-side validation.

Every field must be filled in and numeric before any prediction request is
sent.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class FieldOption:
    value: str
    label: str


@dataclass(frozen=True)
class PatientField:
    """A patient attribute collected by the client."""

    name: str
    label: str
    placeholder: str | None = None
    options: tuple[FieldOption, ...] = field(default_factory=tuple)

    @property
    def is_categorical(self) -> bool:
        return bool(self.options)


def _options(*pairs: tuple[str, str]) -> tuple[FieldOption, ...]:
    return tuple(FieldOption(value, label) for value, label in pairs)


YES_NO = _options(("0", "No"), ("1", "Yes"))

PATIENT_FIELDS: tuple[PatientField, ...] = (
    PatientField("age", "Age", placeholder="Enter age (e.g., 45)"),
    PatientField("sex", "Sex", options=_options(("1", "Male"), ("0", "Female"))),
    PatientField("weight", "Weight (kg)", placeholder="Enter weight in kg"),
    PatientField("height", "Height (cm)", placeholder="Enter height in cm"),
    PatientField("BMI", "BMI", placeholder="Enter BMI"),
    PatientField(
        "smoking",
        "Smoking Status",
        options=_options(("0", "Non-smoker"), ("1", "Current smoker"), ("2", "Former smoker")),
    ),
    PatientField(
        "alcohol_consumption",
        "Alcohol Consumption",
        options=_options(("0", "None"), ("1", "Occasional"), ("2", "Regular"), ("3", "Heavy")),
    ),
    PatientField(
        "physical_activity",
        "Physical Activity Level",
        options=_options(
            ("0", "Sedentary"), ("1", "Light"), ("2", "Moderate"), ("3", "Active"), ("4", "Very Active")
        ),
    ),
    PatientField("family_history", "Family History", options=YES_NO),
    PatientField("cholesterol_medication", "Cholesterol Medication", options=YES_NO),
)


class PatientRecordError(ValueError):
    """Raised when a patient record is incomplete or not numeric."""

    def __init__(self, message: str, fields: list[str]):
        super().__init__(message)
        self.fields = fields


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def prepare_patient_record(
    raw: Mapping[str, Any],
    fields: tuple[PatientField, ...] = PATIENT_FIELDS,
) -> dict[str, float]:
    """
    Validate raw form input and convert it to a numeric patient record.

    Args:
        raw: Field name to entered value (strings or numbers).
        fields: The fields that must be present, in submission order.

    Returns:
        Field name to float, in the order of ``fields``.

    Raises:
        PatientRecordError: A field is missing or blank (all such fields are
            named), or a value does not convert to a finite number.
    """
    missing = [f for f in fields if _is_blank(raw.get(f.name))]
    if missing:
        raise PatientRecordError(
            f"Please fill in all fields: {', '.join(f.label for f in missing)}",
            [f.name for f in missing],
        )

    record: dict[str, float] = {}
    for f in fields:
        value = raw[f.name]
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = math.nan
        if isinstance(value, bool) or not math.isfinite(number):
            raise PatientRecordError(f"Invalid numeric value for {f.label}: {value}", [f.name])
        record[f.name] = number
    return record


def encode_record(record: Mapping[str, float]) -> str:
    """Serialize a patient record to the JSON body sent to the gateway."""
    return json.dumps(dict(record))


def decode_record(payload: str) -> dict[str, float]:
    """Parse a JSON patient record back into a numeric mapping."""
    data = json.loads(payload)
    if not isinstance(data, dict):
        raise PatientRecordError("Patient record must be a JSON object", [])

    record: dict[str, float] = {}
    for name, value in data.items():
        try:
            record[name] = float(value)
        except (TypeError, ValueError) as e:
            raise PatientRecordError(f"Invalid numeric value for {name}: {value}", [name]) from e
    return record
