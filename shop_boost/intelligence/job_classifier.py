"""Rule-first job type / scope classifier.

Free-text repair-order lines are mapped onto a closed taxonomy by an ordered
list of keyword rules. The first rule with any matching needle wins, so the
more distinctive diesel/heavy-duty buckets come before the common ones.
Confidence is a fixed constant per rule, not a measure of match strength.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from shop_boost.schemas.shop_health import ClassificationInput, ClassificationResult

JOB_TYPES: Final[tuple[str, ...]] = (
    "aftertreatment",
    "brakes",
    "driveline",
    "maintenance",
    "tires",
    "suspension",
    "electrical",
    "cooling",
    "hvac",
    "engine",
    "transmission",
    "inspection",
    "general",
)

FALLBACK_JOB_TYPE: Final[str] = "general"
FALLBACK_CONFIDENCE: Final[float] = 0.55
FALLBACK_SIGNAL: Final[str] = "fallback"


@dataclass(frozen=True)
class JobRule:
    """One keyword bucket in the ordered rule list.

    `variants` refine the scope label: the first variant whose needles appear
    in the text supplies the scope, otherwise `scope` is used.
    """

    group: str
    needles: tuple[str, ...]
    job_type: str
    scope: str
    confidence: float
    variants: tuple[tuple[tuple[str, ...], str], ...] = ()

    def first_hit(self, text: str) -> str | None:
        return next((needle for needle in self.needles if needle in text), None)

    def scope_for(self, text: str) -> str:
        for needles, scope in self.variants:
            if any(needle in text for needle in needles):
                return scope
        return self.scope


RULES: Final[tuple[JobRule, ...]] = (
    # Diesel / heavy-duty buckets first (more distinct).
    JobRule(
        group="aftertreatment",
        needles=("dpf", "regen", "scr", "def", "nox", "derate", "aftertreatment"),
        job_type="aftertreatment",
        scope="Aftertreatment / DPF / SCR / DEF",
        confidence=0.92,
    ),
    JobRule(
        group="airbrake",
        needles=("brake chamber", "slack adjust", "s-cam", "air leak", "air brake"),
        job_type="brakes",
        scope="Air brake system service/repair",
        confidence=0.88,
    ),
    JobRule(
        group="driveline",
        needles=("u-joint", "ujoint", "carrier bearing", "driveshaft", "diff", "differential"),
        job_type="driveline",
        scope="Driveline / driveshaft / differential repair",
        confidence=0.86,
    ),
    # Common buckets.
    JobRule(
        group="pm",
        needles=("oil", "lof", "lube", "service a", "service b", "pm ", "preventive"),
        job_type="maintenance",
        scope="PM service / oil change + inspection",
        confidence=0.84,
        variants=((("coolant",), "PM service + coolant check"),),
    ),
    JobRule(
        group="brakes",
        needles=("pads", "rotor", "caliper", "brake job", "brake noise", "pulling when braking"),
        job_type="brakes",
        scope="Brake diagnosis/repair",
        confidence=0.82,
        variants=((("rotor", "pads"), "Brake service – pads/rotors/calipers"),),
    ),
    JobRule(
        group="tires",
        needles=("tire", "balance", "alignment", "rotate", "tpms"),
        job_type="tires",
        scope="Tire service / mount & balance",
        confidence=0.8,
        variants=((("alignment",), "Alignment / steering angle correction"),),
    ),
    JobRule(
        group="suspension",
        needles=("shock", "strut", "ball joint", "control arm", "leaf spring", "bushing"),
        job_type="suspension",
        scope="Suspension / steering component repair",
        confidence=0.8,
    ),
    JobRule(
        group="electrical",
        needles=("no crank", "no start", "starter", "alternator", "battery", "short", "parasitic"),
        job_type="electrical",
        scope="Electrical diagnosis/repair",
        confidence=0.8,
        variants=(
            (("alternator",), "Charging system – alternator diagnosis/replace"),
            (("starter",), "Starting system – starter diagnosis/replace"),
        ),
    ),
    JobRule(
        group="cooling",
        needles=("overheat", "coolant", "radiator", "water pump", "thermostat"),
        job_type="cooling",
        scope="Cooling system diagnosis/repair",
        confidence=0.8,
    ),
    JobRule(
        group="hvac",
        needles=("a/c", "ac ", "air conditioning", "compressor", "refrigerant"),
        job_type="hvac",
        scope="HVAC / A/C diagnosis/repair",
        confidence=0.8,
    ),
    JobRule(
        group="engine",
        needles=("misfire", "rough idle", "injector", "turbo", "compression", "knock"),
        job_type="engine",
        scope="Engine performance diagnosis/repair",
        confidence=0.78,
    ),
    JobRule(
        group="transmission",
        needles=("trans", "shift", "clutch", "torque converter"),
        job_type="transmission",
        scope="Transmission / clutch diagnosis/repair",
        confidence=0.78,
    ),
    JobRule(
        group="inspection",
        needles=("inspection", "pm inspection", "dot inspection", "safety inspection"),
        job_type="inspection",
        scope="Inspection / multi-point",
        confidence=0.76,
        variants=((("dot",), "DOT / compliance inspection"),),
    ),
)


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def match_rule(text: str, rules: Iterable[JobRule] = RULES) -> tuple[JobRule, str] | None:
    """Return the first rule (by rule order) with a matching needle, and that needle."""
    for rule in rules:
        needle = rule.first_hit(text)
        if needle is not None:
            return rule, needle
    return None


def fallback_scope(shop_specialty: str) -> str:
    if "diesel" in shop_specialty or "hd" in shop_specialty:
        return "General heavy-duty service/repair"
    return "General service/repair"


def classify_one(
    line: ClassificationInput,
    shop_specialty: str = "general",
) -> ClassificationResult:
    """Classify one repair-order line. Pure; totals are copied through untouched."""
    text = line.text.joined.lower()
    matched = match_rule(text)

    if matched is None:
        job_type = FALLBACK_JOB_TYPE
        job_scope = fallback_scope(shop_specialty if isinstance(shop_specialty, str) else "general")
        confidence = FALLBACK_CONFIDENCE
        signals: tuple[str, ...] = (FALLBACK_SIGNAL,)
    else:
        rule, needle = matched
        job_type = rule.job_type
        job_scope = rule.scope_for(text)
        confidence = rule.confidence
        signals = (f"{rule.group}:{needle}",)

    return ClassificationResult(
        key=line.key,
        occurred_at=line.occurred_at,
        job_type=job_type,
        job_scope=job_scope,
        confidence=clamp01(confidence),
        signals=signals,
        totals=line.totals,
        tech_name=line.tech_name,
    )


def classify_batch(
    lines: Iterable[ClassificationInput],
    shop_specialty: str = "general",
) -> list[ClassificationResult]:
    """Classify each line independently, preserving input order."""
    return [classify_one(line, shop_specialty=shop_specialty) for line in lines]
