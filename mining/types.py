from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from scipy import sparse


@dataclass
class TfIdfResult:
    matrix: sparse.csr_matrix
    vocabulary: list[str]
    vocab_index: dict[str, int]
    idf: np.ndarray
    doc_freq: np.ndarray

    @property
    def doc_count(self) -> int:
        return int(self.matrix.shape[0])

    @property
    def vocab_size(self) -> int:
        return len(self.vocabulary)


@dataclass
class Keyword:
    word: str
    score: float
    doc_frequency: int


@dataclass
class CorpusStats:
    total_documents: int
    total_tokens: int
    vocabulary_size: int
    avg_tokens_per_doc: float
    sparsity: float


@dataclass
class CooccurrenceEdge:
    term_a: int
    term_b: int
    weight: int


@dataclass
class ClusterInfo:
    cluster_id: int
    label: str
    top_keywords: list[str]
    doc_indices: list[int]
    size: int


@dataclass
class ClusteringResult:
    k_optimal: int
    clusters: list[ClusterInfo]
    silhouette_score: float
    inertias: list[tuple[int, float]] = field(default_factory=list)


@dataclass
class DelayRecord:
    record_id: int
    title: str
    delay_days: float
    technician: str | None = None
    group: str | None = None


@dataclass
class AnomalyRecord:
    record_id: int
    title: str
    anomaly_type: str
    severity: str
    z_score: float
    delay_days: float
    description: str
    expected_range: str
    technician: str | None = None
    group: str | None = None


@dataclass
class DuplicateCandidate:
    record_id: int
    title: str
    group: str | None = None


@dataclass
class DuplicatePair:
    record_a_id: int
    record_a_title: str
    record_b_id: int
    record_b_title: str
    similarity: float
    group: str


@dataclass
class TimeSeries:
    values: list[float]
    period_labels: list[str]


@dataclass
class ForecastPoint:
    period_label: str
    predicted_value: float
    lower_bound: float
    upper_bound: float


@dataclass
class PredictionOutput:
    forecasts: list[ForecastPoint]
    model_info: str
    mae: float
    history_length: int


@dataclass
class TicketRecord:
    record_id: int
    title: str
    group: str | None = None
    technician: str | None = None
    delay_days: float | None = None
    created_at: str | None = None


@dataclass
class GroupKeywords:
    group_name: str
    keywords: list[Keyword]
    ticket_count: int


@dataclass
class TextAnalysis:
    tfidf: TfIdfResult
    stem_mapping: dict[str, str]
    keywords: list[Keyword]
    by_group: list[GroupKeywords] | None
    stats: CorpusStats
