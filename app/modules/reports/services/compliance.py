"""
NCF compliance checks

Duplicate and format validation of issued NCFs, sequence depletion
estimates and the recommendations derived from them.
"""

import math
from collections import Counter
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set

from app.common.validators import validate_ncf

from ..schemas import NCFCompliance, NCFInsights, NCFSequenceStatus


LOW_REMAINING = 100
WARNING_REMAINING = 500
URGENT_DAYS = 30
HIGH_DAILY_CONSUMPTION = 100
URGENT_PERCENTAGE = 90
RENEWAL_PERCENTAGE = 80


def sequence_status(remaining: int) -> str:
    if remaining < LOW_REMAINING:
        return "low"
    if remaining < WARNING_REMAINING:
        return "warning"
    return "ok"


def find_duplicates(ncfs: Iterable[Optional[str]]) -> Set[str]:
    """NCFs que aparecen más de una vez"""
    counts = Counter(ncf for ncf in ncfs if ncf)
    return {ncf for ncf, count in counts.items() if count > 1}


def count_invalid(ncfs: Iterable[Optional[str]]) -> int:
    return sum(1 for ncf in ncfs if ncf and not validate_ncf(ncf))


def evaluate_compliance(ncfs: Sequence[Optional[str]], sequences: Sequence[NCFSequenceStatus]) -> NCFCompliance:
    """
    Score = 100 - (duplicados + inválidos) / total * 100, nunca negativo.
    Sin ventas con NCF el score es 100.
    """
    issues: List[str] = []

    duplicates = find_duplicates(ncfs)
    if duplicates:
        issues.append(f"{len(duplicates)} NCFs duplicados encontrados")

    invalid = count_invalid(ncfs)
    if invalid:
        issues.append(f"{invalid} NCFs con formato inválido")

    total = len(ncfs)
    score = max(0.0, 100 - (len(duplicates) + invalid) / total * 100) if total else 100.0

    low_sequences = [seq for seq in sequences if seq.remaining < LOW_REMAINING]
    if low_sequences:
        issues.append(f"{len(low_sequences)} secuencias con stock bajo")

    return NCFCompliance(
        sequential_compliance=not duplicates and not invalid,
        duplicate_count=len(duplicates),
        invalid_format_count=invalid,
        compliance_score=round(score, 2),
        issues=issues,
    )


def average_daily_consumption(daily_counts: Sequence[int]) -> float:
    return sum(daily_counts) / len(daily_counts) if daily_counts else 0.0


def estimate_days_remaining(remaining: Iterable[int], daily_average: float) -> int:
    """Días hasta agotar la secuencia más crítica (remaining < 500)"""
    critical = [value for value in remaining if value < WARNING_REMAINING]
    if not critical or daily_average <= 0:
        return 0
    return math.floor(min(value / daily_average for value in critical))


def build_insights(
    sequences: Sequence[NCFSequenceStatus],
    type_counts: Dict[str, int],
    daily_counts: Dict[date, int],
) -> NCFInsights:
    most_used = None
    if type_counts:
        # ante empate gana el primer tipo observado
        most_used = max(type_counts, key=type_counts.get)

    peak_day = None
    if daily_counts:
        peak_day = max(daily_counts, key=daily_counts.get)

    daily_average = average_daily_consumption(list(daily_counts.values()))
    estimate = estimate_days_remaining((seq.remaining for seq in sequences), daily_average)

    recommendations: List[str] = []
    urgent_actions: List[str] = []

    if 0 < estimate < URGENT_DAYS:
        urgent_actions.append("Solicitar nuevas secuencias NCF a DGII inmediatamente")

    if daily_average > HIGH_DAILY_CONSUMPTION:
        recommendations.append("Considerar solicitar secuencias adicionales por alto volumen")

    for seq in sequences:
        if seq.percentage > URGENT_PERCENTAGE:
            urgent_actions.append(f"Secuencia {seq.type} al 90% de capacidad")
        elif seq.percentage > RENEWAL_PERCENTAGE:
            recommendations.append(f"Planificar renovación de secuencia {seq.type}")

    return NCFInsights(
        most_used_ncf_type=most_used,
        peak_usage_day=peak_day,
        average_daily_consumption=round(daily_average, 2),
        estimated_days_remaining=estimate,
        recommendations=recommendations,
        urgent_actions=urgent_actions,
    )
