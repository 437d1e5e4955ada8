from __future__ import annotations

import logging
from collections import defaultdict

import numpy as np
from rapidfuzz.distance import JaroWinkler

from .types import AnomalyRecord, DelayRecord, DuplicateCandidate, DuplicatePair

logger = logging.getLogger(__name__)

DEFAULT_Z_THRESHOLD = 2.5
DEFAULT_SIMILARITY_THRESHOLD = 0.85
HIGH_SEVERITY_Z = 3.5
ANOMALY_TYPE = "abnormal_delay"
UNKNOWN_GROUP = "Unknown"
_MIN_STD = 1e-10


def detect_anomalies(
    records: list[DelayRecord],
    z_threshold: float = DEFAULT_Z_THRESHOLD,
) -> list[AnomalyRecord]:
    """Flag records whose resolution delay is a high outlier.

    Delays of zero or less are not measurable yet and are skipped. The
    z-score is taken on ``ln(delay + 1)`` to tame the right skew; the
    expected range quoted in the description comes from the raw delays.
    """
    valid = [r for r in records if r.delay_days > 0]
    if not valid:
        return []

    log_delays = np.log1p(np.array([r.delay_days for r in valid], dtype=float))
    log_mean, log_std = float(log_delays.mean()), float(log_delays.std())
    if log_std < _MIN_STD:
        return []

    raw = np.array([r.delay_days for r in valid], dtype=float)
    mean_delay, std_delay = float(raw.mean()), float(raw.std())
    expected_range = f"{mean_delay:.0f}-{mean_delay + std_delay:.0f}"

    results: list[AnomalyRecord] = []
    for record, log_delay in zip(valid, log_delays.tolist()):
        z = (log_delay - log_mean) / log_std
        if z <= z_threshold:
            continue
        results.append(
            AnomalyRecord(
                record_id=record.record_id,
                title=record.title,
                anomaly_type=ANOMALY_TYPE,
                severity="high" if z > HIGH_SEVERITY_Z else "medium",
                z_score=z,
                delay_days=record.delay_days,
                description=(
                    f"Delay of {record.delay_days:g} days "
                    f"(z-score: {z:.2f}, expected: {expected_range} days)"
                ),
                expected_range=expected_range,
                technician=record.technician,
                group=record.group,
            )
        )

    results.sort(key=lambda a: (-a.z_score, a.record_id))
    logger.info("Found %d delay anomalies among %d records", len(results), len(valid))
    return results


def detect_duplicates(
    records: list[DuplicateCandidate],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[DuplicatePair]:
    """Pair records of the same group whose titles are nearly identical.

    Titles are compared lowercased with Jaro-Winkler similarity; a pair is
    kept when its similarity is strictly above ``threshold``.
    """
    groups: dict[str, list[DuplicateCandidate]] = defaultdict(list)
    for record in records:
        groups[record.group if record.group is not None else UNKNOWN_GROUP].append(record)

    results: list[DuplicatePair] = []
    for group, members in groups.items():
        lowered = [m.title.lower() for m in members]
        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                a, b = members[i], members[j]
                if a.record_id == b.record_id:
                    continue
                similarity = JaroWinkler.similarity(lowered[i], lowered[j])
                if similarity > threshold:
                    results.append(
                        DuplicatePair(
                            record_a_id=a.record_id,
                            record_a_title=a.title,
                            record_b_id=b.record_id,
                            record_b_title=b.title,
                            similarity=float(similarity),
                            group=group,
                        )
                    )

    results.sort(key=lambda p: (-p.similarity, p.record_a_id, p.record_b_id))
    logger.info("Found %d duplicate pairs in %d groups", len(results), len(groups))
    return results
