from __future__ import annotations

import argparse
import csv
import json
import logging
from dataclasses import asdict, replace
from pathlib import Path

from .anomalies import detect_anomalies, detect_duplicates
from .clustering import cluster
from .config import AnalysisSettings, load_lexicon, load_settings
from .errors import MiningError
from .forecast import MIN_HISTORY, forecast
from .keywords import cooccurrences
from .pipeline import analyze_text, daily_volume, load_tickets
from .preprocessing import StopWordFilter, resolve_stem
from .types import (
    AnomalyRecord,
    ClusteringResult,
    DelayRecord,
    DuplicateCandidate,
    DuplicatePair,
    PredictionOutput,
    TextAnalysis,
    TicketRecord,
)

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mine ticket titles for keywords, clusters, anomalies and trends.")
    parser.add_argument("--input", required=True, help="Ticket records (JSON list or CSV).")
    parser.add_argument("--output-dir", default="output/mining", help="Directory for generated artifacts.")
    parser.add_argument("--config", default=None, help="YAML file overriding analysis settings.")
    parser.add_argument("--lexicon", default=None, help="YAML file replacing the stop-word lists.")
    parser.add_argument("--k-min", type=int, default=None, help="Min cluster count for auto selection.")
    parser.add_argument("--k-max", type=int, default=None, help="Max cluster count for auto selection.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for K-Means.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input not found: {input_path}")

    try:
        settings = _settings_from_args(load_settings(args.config), args)
        lexicon = load_lexicon(args.lexicon)
        tickets = load_tickets(input_path)
    except MiningError as e:
        raise SystemExit(str(e)) from e
    if not tickets:
        raise SystemExit("No usable ticket records in the input.")

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    technicians = sorted({t.technician for t in tickets if t.technician})
    stop_filter = StopWordFilter(lexicon).with_names(technicians)

    analysis = analyze_text(
        [t.title for t in tickets],
        stop_filter,
        settings,
        groups=[t.group for t in tickets],
    )
    clustering = _run_clustering(analysis, settings)
    anomalies = detect_anomalies(
        [
            DelayRecord(
                record_id=t.record_id,
                title=t.title,
                delay_days=t.delay_days,
                technician=t.technician,
                group=t.group,
            )
            for t in tickets
            if t.delay_days is not None
        ],
        settings.z_threshold,
    )
    duplicates = detect_duplicates(
        [DuplicateCandidate(record_id=t.record_id, title=t.title, group=t.group) for t in tickets],
        settings.similarity_threshold,
    )
    prediction = _run_forecast(tickets, settings)

    _write_artifacts(
        output_dir=output_dir,
        input_path=input_path,
        tickets=tickets,
        analysis=analysis,
        clustering=clustering,
        anomalies=anomalies,
        duplicates=duplicates,
        prediction=prediction,
        settings=settings,
    )

    print(f"Done. Outputs written to: {output_dir.resolve()}")


def _settings_from_args(settings: AnalysisSettings, args: argparse.Namespace) -> AnalysisSettings:
    overrides = {
        key: value
        for key, value in (("k_min", args.k_min), ("k_max", args.k_max), ("seed", args.seed))
        if value is not None
    }
    return replace(settings, **overrides)


def _run_clustering(analysis: TextAnalysis, settings: AnalysisSettings) -> ClusteringResult | None:
    readable = [resolve_stem(term, analysis.stem_mapping) for term in analysis.tfidf.vocabulary]
    try:
        return cluster(
            analysis.tfidf.matrix,
            readable,
            k_min=settings.k_min,
            k_max=settings.k_max,
            max_iter=settings.max_iter,
            seed=settings.seed,
        )
    except MiningError as e:
        logger.warning("Clustering skipped: %s", e)
        return None


def _run_forecast(tickets: list[TicketRecord], settings: AnalysisSettings) -> PredictionOutput | None:
    series = daily_volume(tickets)
    if len(series.values) < MIN_HISTORY:
        logger.warning(
            "Forecast skipped: %d days of history, %d required",
            len(series.values),
            MIN_HISTORY,
        )
        return None
    return forecast(series, settings.periods_ahead, settings.season_length)


def _write_artifacts(
    output_dir: Path,
    input_path: Path,
    tickets: list[TicketRecord],
    analysis: TextAnalysis,
    clustering: ClusteringResult | None,
    anomalies: list[AnomalyRecord],
    duplicates: list[DuplicatePair],
    prediction: PredictionOutput | None,
    settings: AnalysisSettings,
) -> None:
    ids = [t.record_id for t in tickets]
    vocabulary = analysis.tfidf.vocabulary
    mapping = analysis.stem_mapping

    nodes, edges = cooccurrences(analysis.tfidf, settings.cooccurrence_nodes, settings.cooccurrence_edges)
    keywords_payload = {
        "input": str(input_path),
        "corpus_stats": asdict(analysis.stats),
        "keywords": [asdict(kw) for kw in analysis.keywords],
        "by_group": [asdict(group) for group in analysis.by_group or []],
        "cooccurrence": {
            "nodes": [resolve_stem(vocabulary[i], mapping) for i in nodes],
            "edges": [
                {
                    "source": resolve_stem(vocabulary[e.term_a], mapping),
                    "target": resolve_stem(vocabulary[e.term_b], mapping),
                    "weight": e.weight,
                }
                for e in edges
            ],
        },
    }
    (output_dir / "keywords.json").write_text(
        json.dumps(keywords_payload, indent=2, ensure_ascii=False), encoding="utf-8"
    )

    clusters_payload: dict = {"available": clustering is not None}
    if clustering is not None:
        clusters_payload.update(
            {
                "k_optimal": clustering.k_optimal,
                "silhouette_score": clustering.silhouette_score,
                "inertias": [{"k": k, "inertia": v} for k, v in clustering.inertias],
                "clusters": [
                    {
                        "cluster_id": c.cluster_id,
                        "label": c.label,
                        "top_keywords": c.top_keywords,
                        "size": c.size,
                        "ticket_ids": [ids[i] for i in c.doc_indices],
                    }
                    for c in clustering.clusters
                ],
            }
        )
    (output_dir / "clusters.json").write_text(
        json.dumps(clusters_payload, indent=2, ensure_ascii=False), encoding="utf-8"
    )

    _write_csv(output_dir / "anomalies.csv", [asdict(a) for a in anomalies])
    _write_csv(output_dir / "duplicates.csv", [asdict(d) for d in duplicates])
    _write_csv(
        output_dir / "forecast.csv",
        [asdict(p) for p in prediction.forecasts] if prediction is not None else [],
    )
    _write_report(output_dir / "report.md", input_path, analysis, clustering, anomalies, duplicates, prediction)


def _write_csv(path: Path, rows: list[dict]) -> None:
    if not rows:
        path.write_text("", encoding="utf-8")
        return
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)


def _write_report(
    path: Path,
    input_path: Path,
    analysis: TextAnalysis,
    clustering: ClusteringResult | None,
    anomalies: list[AnomalyRecord],
    duplicates: list[DuplicatePair],
    prediction: PredictionOutput | None,
) -> None:
    stats = analysis.stats
    keyword_lines = [f"- {kw.word} ({kw.score:.3f}, {kw.doc_frequency} tickets)" for kw in analysis.keywords]

    if clustering is None:
        cluster_lines = ["- Clustering not available for this corpus."]
    else:
        cluster_lines = [
            f"- Cluster {c.cluster_id} ({c.size} tickets): {c.label or '(no label)'}" for c in clustering.clusters
        ]

    anomaly_lines = [f"- #{a.record_id} [{a.severity}] {a.title}: {a.description}" for a in anomalies[:20]]
    duplicate_lines = [
        f"- #{d.record_a_id} / #{d.record_b_id} ({d.similarity:.3f}, {d.group}): {d.record_a_title}"
        for d in duplicates[:20]
    ]

    if prediction is None:
        forecast_lines = ["- Not enough daily history for a forecast."]
    else:
        forecast_lines = [f"- Model: {prediction.model_info}", f"- MAE: {prediction.mae:.3f}"]
        forecast_lines.extend(
            f"- {p.period_label}: {p.predicted_value:.1f} [{p.lower_bound:.1f}, {p.upper_bound:.1f}]"
            for p in prediction.forecasts[:7]
        )

    silhouette = f"{clustering.silhouette_score:.4f}" if clustering is not None else "n/a"
    report = f"""# Ticket Mining Report

## Input
- Source: `{input_path}`
- Tickets: {stats.total_documents}
- Tokens: {stats.total_tokens} (avg {stats.avg_tokens_per_doc:.2f} per ticket)
- Vocabulary: {stats.vocabulary_size} terms (sparsity {stats.sparsity:.4f})

## Keywords
{chr(10).join(keyword_lines) if keyword_lines else '- No keywords extracted.'}

## Clusters
- silhouette: {silhouette}
{chr(10).join(cluster_lines)}

## Delay Anomalies
{chr(10).join(anomaly_lines) if anomaly_lines else '- No anomalies detected.'}

## Possible Duplicates
{chr(10).join(duplicate_lines) if duplicate_lines else '- No duplicates detected.'}

## Volume Forecast
{chr(10).join(forecast_lines)}
"""
    path.write_text(report, encoding="utf-8")


if __name__ == "__main__":
    main()
