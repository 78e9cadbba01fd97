from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from safety_engine.errors import InvalidInput
from safety_engine.models import (
    CrimeZone,
    HazardCategory,
    HazardIncident,
    SafetyFactors,
    SafetyScore,
    WeatherRisk,
    WeatherSnapshot,
)

BASELINE_SCORE = 100
CONSERVATIVE_DEFAULT_SCORE = 50
INCIDENT_PENALTY = 2
INCIDENT_PENALTY_CAP = 30
CRIME_ZONE_PENALTY = 10
CRIME_ZONE_PENALTY_CAP = 30
RAIN_STORM_PENALTY = 15
LOW_VISIBILITY_PENALTY = 10

RAIN_STORM_KEYWORDS = ("rain", "storm", "thunder")
LOW_VISIBILITY_KEYWORDS = ("fog", "mist")

SCORED_INCIDENT_CATEGORIES = frozenset({HazardCategory.TRAFFIC, HazardCategory.USER_REPORT})


class WarningCondition(str, Enum):
    LOW_LIGHT = "low-light"
    CRIME_ZONE = "crime-zone"
    INCIDENTS = "incidents"
    RAIN_STORM = "rain-storm"
    LOW_VISIBILITY = "low-visibility"


WARNING_MESSAGES = {
    WarningCondition.LOW_LIGHT: "Low-light area detected",
    WarningCondition.CRIME_ZONE: "Crowded junction or crime-prone zone ahead",
    WarningCondition.INCIDENTS: "Reported incidents nearby",
    WarningCondition.RAIN_STORM: "Rain or storm conditions, surfaces may be slippery",
    WarningCondition.LOW_VISIBILITY: "Low visibility due to fog or mist",
}

UNAVAILABLE_WARNING = "Safety data is currently unavailable, stay alert"


def incident_deduction(incident_count: int) -> int:
    if incident_count < 0:
        raise InvalidInput("incident_count must be >= 0")
    return min(INCIDENT_PENALTY * incident_count, INCIDENT_PENALTY_CAP)


def crime_zone_deduction(crime_zone_count: int) -> int:
    if crime_zone_count < 0:
        raise InvalidInput("crime_zone_count must be >= 0")
    return min(CRIME_ZONE_PENALTY * crime_zone_count, CRIME_ZONE_PENALTY_CAP)


def classify_weather(weather: WeatherSnapshot | None) -> tuple[WeatherRisk, int]:
    """Return the weather risk and its deduction. Rain/storm wins over fog/mist."""
    if weather is None:
        return WeatherRisk.NORMAL, 0
    description = (weather.description or "").lower()
    if any(keyword in description for keyword in RAIN_STORM_KEYWORDS):
        return WeatherRisk.RAIN_STORM, RAIN_STORM_PENALTY
    if any(keyword in description for keyword in LOW_VISIBILITY_KEYWORDS):
        return WeatherRisk.LOW_VISIBILITY, LOW_VISIBILITY_PENALTY
    return WeatherRisk.NORMAL, 0


def is_low_light(hour_of_day: int) -> bool:
    _validate_hour(hour_of_day)
    return hour_of_day < 6 or hour_of_day >= 18


def count_scored_incidents(incidents: Sequence[HazardIncident]) -> int:
    return sum(1 for incident in incidents if incident.category in SCORED_INCIDENT_CATEGORIES)


def detect_warning_conditions(
    incident_count: int,
    crime_zone_count: int,
    weather_risk: WeatherRisk,
    low_light: bool,
) -> tuple[WarningCondition, ...]:
    conditions: list[WarningCondition] = []
    if incident_count > 0 and low_light:
        conditions.append(WarningCondition.LOW_LIGHT)
    if crime_zone_count > 0:
        conditions.append(WarningCondition.CRIME_ZONE)
    if incident_count > 0:
        conditions.append(WarningCondition.INCIDENTS)
    if weather_risk is WeatherRisk.RAIN_STORM:
        conditions.append(WarningCondition.RAIN_STORM)
    elif weather_risk is WeatherRisk.LOW_VISIBILITY:
        conditions.append(WarningCondition.LOW_VISIBILITY)
    return tuple(conditions)


def calculate_safety_score(
    incidents: Sequence[HazardIncident],
    crime_zones: Sequence[CrimeZone],
    weather: WeatherSnapshot | None,
    hour_of_day: int,
) -> SafetyScore:
    low_light = is_low_light(hour_of_day)
    incident_count = count_scored_incidents(incidents)
    crime_zone_count = len(crime_zones)
    weather_risk, weather_penalty = classify_weather(weather)

    raw_score = (
        BASELINE_SCORE
        - incident_deduction(incident_count)
        - crime_zone_deduction(crime_zone_count)
        - weather_penalty
    )
    conditions = detect_warning_conditions(incident_count, crime_zone_count, weather_risk, low_light)
    return SafetyScore(
        score=clamp_score(raw_score),
        warnings=tuple(WARNING_MESSAGES[condition] for condition in conditions),
        factors=SafetyFactors(
            incident_count=incident_count,
            crime_zone_count=crime_zone_count,
            weather_risk=weather_risk,
        ),
    )


def unavailable_safety_score() -> SafetyScore:
    return SafetyScore(
        score=CONSERVATIVE_DEFAULT_SCORE,
        warnings=(UNAVAILABLE_WARNING,),
        factors=SafetyFactors(incident_count=0, crime_zone_count=0, weather_risk=WeatherRisk.NORMAL),
    )


def clamp_score(raw_score: float) -> int:
    return int(min(BASELINE_SCORE, max(0, round(raw_score))))


def safety_level(score: int) -> str:
    if score < 0 or score > 100:
        raise ValueError("score must be between 0 and 100")
    if score >= 85:
        return "high"
    if score >= 70:
        return "medium"
    return "low"


def safety_recommendation(score: int) -> str:
    level = safety_level(score)
    if level == "high":
        return "This route is considered safe"
    if level == "medium":
        return "Exercise normal caution on this route"
    return "Consider an alternative route or travel with others"


def should_suggest_reroute(
    score: int,
    low_light: bool,
    threshold: int = 60,
    low_light_threshold: int = 80,
) -> bool:
    return score < threshold or (low_light and score < low_light_threshold)


def _validate_hour(hour_of_day: int) -> None:
    if isinstance(hour_of_day, bool) or not isinstance(hour_of_day, int):
        raise InvalidInput("hour_of_day must be an integer")
    if hour_of_day < 0 or hour_of_day > 23:
        raise InvalidInput("hour_of_day must be between 0 and 23")
