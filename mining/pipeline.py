from __future__ import annotations

import csv
import json
import logging
from collections import Counter
from dataclasses import replace
from datetime import date, timedelta
from pathlib import Path
from typing import Any

from .config import AnalysisSettings
from .errors import InvalidParameterError
from .keywords import top_keywords, top_keywords_for_subset
from .preprocessing import StopWordFilter, build_stem_mapping, normalize_with_originals, resolve_stem
from .tfidf import corpus_stats, vectorize
from .types import GroupKeywords, Keyword, TextAnalysis, TicketRecord, TimeSeries

logger = logging.getLogger(__name__)

UNKNOWN_GROUP = "Unknown"


def load_tickets(path: str | Path) -> list[TicketRecord]:
    """Read ticket records from a JSON list or a CSV file.

    Rows without a usable id or title are skipped.
    """
    path = Path(path)
    if path.suffix.lower() == ".csv":
        with path.open(newline="", encoding="utf-8") as f:
            rows: list[dict[str, Any]] = list(csv.DictReader(f))
    else:
        rows = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(rows, list):
            raise InvalidParameterError(f"Expected a JSON list of tickets in {path}")

    tickets: list[TicketRecord] = []
    skipped = 0
    for row in rows:
        ticket = _row_to_ticket(row)
        if ticket is None:
            skipped += 1
            continue
        tickets.append(ticket)
    if skipped:
        logger.warning("Skipped %d malformed rows in %s", skipped, path)
    return tickets


def analyze_text(
    texts: list[str],
    stop_filter: StopWordFilter,
    settings: AnalysisSettings | None = None,
    groups: list[str | None] | None = None,
) -> TextAnalysis:
    """Keywords of a corpus, globally and per group, with readable words.

    Stems are resolved back to the original word seen most often so the
    keywords read naturally; the TF-IDF result itself keeps the stems.
    """
    settings = settings or AnalysisSettings()

    all_pairs: list[tuple[str, str]] = []
    tokenized: list[list[str]] = []
    for text in texts:
        pairs = normalize_with_originals(text, stop_filter)
        all_pairs.extend(pairs)
        tokenized.append([stem for stem, _ in pairs])

    stem_mapping = build_stem_mapping(all_pairs)
    total_tokens = sum(len(tokens) for tokens in tokenized)
    tfidf = vectorize(tokenized, settings.min_df)

    keywords = _resolve(top_keywords(tfidf, settings.top_n), stem_mapping)

    by_group: list[GroupKeywords] | None = None
    if groups is not None:
        members: dict[str, list[int]] = {}
        for idx, group in enumerate(groups):
            members.setdefault(group if group is not None else UNKNOWN_GROUP, []).append(idx)
        by_group = [
            GroupKeywords(
                group_name=name,
                keywords=_resolve(top_keywords_for_subset(tfidf, indices, settings.top_n), stem_mapping),
                ticket_count=len(indices),
            )
            for name, indices in members.items()
        ]
        by_group.sort(key=lambda g: (-g.ticket_count, g.group_name))

    stats = corpus_stats(tfidf, total_tokens)
    logger.info(
        "Analyzed %d texts: %d tokens, vocabulary of %d terms",
        stats.total_documents,
        stats.total_tokens,
        stats.vocabulary_size,
    )
    return TextAnalysis(
        tfidf=tfidf,
        stem_mapping=stem_mapping,
        keywords=keywords,
        by_group=by_group,
        stats=stats,
    )


def daily_volume(tickets: list[TicketRecord]) -> TimeSeries:
    """Count tickets per creation day, filling empty days with zero."""
    counts: Counter[date] = Counter()
    for ticket in tickets:
        if not ticket.created_at:
            continue
        try:
            counts[date.fromisoformat(ticket.created_at[:10])] += 1
        except ValueError:
            logger.debug("Ignoring unparseable creation date %r", ticket.created_at)

    if not counts:
        return TimeSeries(values=[], period_labels=[])

    first, last = min(counts), max(counts)
    values: list[float] = []
    labels: list[str] = []
    day = first
    while day <= last:
        values.append(float(counts.get(day, 0)))
        labels.append(day.isoformat())
        day += timedelta(days=1)
    return TimeSeries(values=values, period_labels=labels)


def _resolve(keywords: list[Keyword], mapping: dict[str, str]) -> list[Keyword]:
    return [replace(kw, word=resolve_stem(kw.word, mapping)) for kw in keywords]


def _row_to_ticket(row: Any) -> TicketRecord | None:
    if not isinstance(row, dict):
        return None
    try:
        record_id = int(row.get("id"))
    except (TypeError, ValueError):
        return None
    title = row.get("title")
    if not title:
        return None

    delay: float | None
    try:
        delay = float(row["delay_days"]) if row.get("delay_days") not in (None, "") else None
    except (TypeError, ValueError):
        delay = None

    return TicketRecord(
        record_id=record_id,
        title=str(title),
        group=row.get("group") or None,
        technician=row.get("technician") or None,
        delay_days=delay,
        created_at=row.get("created_at") or None,
    )
