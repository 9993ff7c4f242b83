"""Donor eligibility screening rules."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

# purpose: map a donor's clinical record to an ACTIVE/REJECTED verdict plus triggered exclusion reasons
# inputs: donor snapshot (mapping, pydantic model or ORM row) carrying exclusion flags, pathologies and lab tests
# outputs: EligibilityVerdict with every triggered reason, never short-circuited
# status: stable

SEROLOGY_TESTS = ("HIV", "VDRL", "Hepatitis B", "Hepatitis C")
REACTIVE_MARKERS = ("REACTIVO", "POSITIVO", "REACTIVE", "POSITIVE", "+")

# Fields whose mutation forces a reclassification of the merged record.
RULE_FIELDS = frozenset(
    {
        "toxic_substances",
        "chemical_exposure",
        "recent_vaccines",
        "blood_transfusion_risk",
        "pathologies",
        "lab_tests",
    }
)


@dataclass(frozen=True)
class EligibilityVerdict:
    status: str
    reasons: list[str] = field(default_factory=list)

    @property
    def rejected(self) -> bool:
        return self.status == "REJECTED"

    @property
    def rejection_reason(self) -> str | None:
        return " | ".join(self.reasons) or None


def _read(snapshot: Any, name: str, default: Any = None) -> Any:
    if isinstance(snapshot, Mapping):
        return snapshot.get(name, default)
    return getattr(snapshot, name, default)


def _entries(snapshot: Any, name: str) -> list[Any]:
    return list(_read(snapshot, name) or [])


def _find(entries: list[Any], name: str) -> Any | None:
    for entry in entries:
        if _read(entry, "name") == name:
            return entry
    return None


def _flag(name: str) -> Callable[[Any], bool]:
    return lambda snapshot: bool(_read(snapshot, name, False))


def _pathology_present(name: str) -> Callable[[Any], bool]:
    # TODO: evaluate time_elapsed once the one-year healing threshold has a structured format
    def predicate(snapshot: Any) -> bool:
        entry = _find(_entries(snapshot, "pathologies"), name)
        return bool(entry is not None and _read(entry, "present", False))

    return predicate


def is_reactive(result: str | None) -> bool:
    """Return True when a serology result text reads as reactive/positive."""

    text = (result or "").upper()
    return any(marker in text for marker in REACTIVE_MARKERS)


def _serology_reactive(test_name: str) -> Callable[[Any], bool]:
    def predicate(snapshot: Any) -> bool:
        test = _find(_entries(snapshot, "lab_tests"), test_name)
        if test is None:
            return False
        after = _read(test, "after") or {}
        return is_reactive(_read(after, "result"))

    return predicate


EXCLUSION_RULES: list[tuple[Callable[[Any], bool], str]] = [
    (_flag("toxic_substances"), "toxic substance use"),
    (_flag("chemical_exposure"), "chemical exposure"),
    (_flag("recent_vaccines"), "recent vaccination"),
    (_flag("blood_transfusion_risk"), "transfusion risk"),
    (_pathology_present("Tattoos"), "tattoos recorded (verify healing time over one year)"),
    (_pathology_present("Piercings"), "piercings recorded (verify healing time over one year)"),
] + [(_serology_reactive(test), f"{test} reactive") for test in SEROLOGY_TESTS]


def classify(snapshot: Any) -> EligibilityVerdict:
    """Evaluate every exclusion rule against ``snapshot`` and collect the triggered reasons."""

    reasons = [reason for predicate, reason in EXCLUSION_RULES if predicate(snapshot)]
    return EligibilityVerdict(status="REJECTED" if reasons else "ACTIVE", reasons=reasons)


def touches_rule_fields(updates: Mapping[str, Any]) -> bool:
    return any(name in RULE_FIELDS for name in updates)
