from __future__ import annotations

import csv
import json
import sys
import tempfile
import unittest
from datetime import date, timedelta
from pathlib import Path
from unittest import mock

from mining import analyze_tickets
from mining.config import AnalysisSettings, load_settings
from mining.errors import ConfigurationError, InvalidParameterError
from mining.pipeline import UNKNOWN_GROUP, analyze_text, daily_volume, load_tickets
from mining.preprocessing import StopWordFilter
from mining.types import TicketRecord

TITLES = [
    "Imprimante bureau 3 en panne",
    "Imprimante du bureau 3 ne fonctionne plus",
    "Imprimante bloquée au bureau 5",
    "Connexion VPN impossible depuis domicile",
    "VPN déconnecté toutes les minutes",
    "Connexion VPN refusée",
    "Messagerie Outlook ne démarre pas",
    "Outlook plante à l'ouverture de la messagerie",
]


def sample_rows() -> list[dict]:
    start = date(2024, 1, 1)
    rows = []
    for i in range(120):
        rows.append(
            {
                "id": i + 1,
                "title": TITLES[i % len(TITLES)],
                "group": ["Support", "Réseau", None][i % 3],
                "technician": "Jean Dupont" if i % 2 else "Marie Martin",
                "delay_days": 600.0 if i == 7 else float(3 + i % 5),
                "created_at": (start + timedelta(days=i)).isoformat(),
            }
        )
    return rows


class AnalyzeTextTests(unittest.TestCase):
    def test_keywords_are_readable_words(self) -> None:
        analysis = analyze_text(TITLES, StopWordFilter(), AnalysisSettings(top_n=5))
        words = [kw.word for kw in analysis.keywords]
        self.assertLessEqual(len(words), 5)
        self.assertIn("imprimante", words)
        self.assertEqual(analysis.stats.total_documents, len(TITLES))
        self.assertIsNone(analysis.by_group)
        for stem in analysis.tfidf.vocabulary:
            self.assertIn(stem, analysis.stem_mapping)

    def test_by_group(self) -> None:
        groups = ["Support", "Support", "Support", "Réseau", "Réseau", None, None, None]
        analysis = analyze_text(TITLES, StopWordFilter(), AnalysisSettings(min_df=1), groups=groups)
        names = [g.group_name for g in analysis.by_group]
        self.assertEqual(names, ["Support", UNKNOWN_GROUP, "Réseau"])
        self.assertEqual([g.ticket_count for g in analysis.by_group], [3, 3, 2])
        support = analysis.by_group[0]
        self.assertIn("imprimante", [kw.word for kw in support.keywords[:2]])
        self.assertTrue(all(kw.doc_frequency <= 3 for kw in support.keywords))

    def test_empty_texts(self) -> None:
        analysis = analyze_text([], StopWordFilter())
        self.assertEqual(analysis.keywords, [])
        self.assertEqual(analysis.stats.total_documents, 0)


class LoadTicketsTests(unittest.TestCase):
    def test_json_skips_malformed_rows(self) -> None:
        rows = sample_rows()[:3] + [{"title": "no id"}, {"id": 99}, "not a row"]
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "tickets.json"
            path.write_text(json.dumps(rows), encoding="utf-8")
            with self.assertLogs("mining.pipeline", level="WARNING"):
                tickets = load_tickets(path)
        self.assertEqual([t.record_id for t in tickets], [1, 2, 3])
        self.assertEqual(tickets[2].group, None)
        self.assertEqual(tickets[0].delay_days, 3.0)

    def test_json_must_be_a_list(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "tickets.json"
            path.write_text(json.dumps({"id": 1}), encoding="utf-8")
            with self.assertRaises(InvalidParameterError):
                load_tickets(path)

    def test_csv(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "tickets.csv"
            with path.open("w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=["id", "title", "group", "technician", "delay_days", "created_at"])
                writer.writeheader()
                writer.writerow({"id": "4", "title": "Écran noir", "group": "Support", "delay_days": "2.5"})
                writer.writerow({"id": "5", "title": "Souris cassée", "delay_days": ""})
            tickets = load_tickets(path)
        self.assertEqual(len(tickets), 2)
        self.assertEqual(tickets[0].delay_days, 2.5)
        self.assertIsNone(tickets[1].delay_days)
        self.assertIsNone(tickets[1].group)


class DailyVolumeTests(unittest.TestCase):
    def test_gaps_filled_with_zero(self) -> None:
        tickets = [
            TicketRecord(1, "a", created_at="2024-03-01T08:00:00"),
            TicketRecord(2, "b", created_at="2024-03-01"),
            TicketRecord(3, "c", created_at="2024-03-04"),
            TicketRecord(4, "d", created_at="not a date"),
            TicketRecord(5, "e"),
        ]
        series = daily_volume(tickets)
        self.assertEqual(series.values, [2.0, 0.0, 0.0, 1.0])
        self.assertEqual(series.period_labels, ["2024-03-01", "2024-03-02", "2024-03-03", "2024-03-04"])

    def test_no_dates(self) -> None:
        series = daily_volume([TicketRecord(1, "a")])
        self.assertEqual(series.values, [])


class SettingsTests(unittest.TestCase):
    def test_overlay_and_unknown_keys(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.yaml"
            path.write_text("k_max: 6\nz_threshold: 3.0\nbogus: 1\n", encoding="utf-8")
            with self.assertLogs("mining.config", level="WARNING"):
                settings = load_settings(path)
        self.assertEqual(settings.k_max, 6)
        self.assertEqual(settings.z_threshold, 3.0)
        self.assertEqual(settings.min_df, AnalysisSettings().min_df)

    def test_defaults_and_bad_files(self) -> None:
        self.assertEqual(load_settings(), AnalysisSettings())
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.yaml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                load_settings(path)
            path.write_text("k_max: [unclosed\n", encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                load_settings(path)


class CommandLineTests(unittest.TestCase):
    def test_main_writes_artifacts(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            input_path = Path(tmp) / "tickets.json"
            input_path.write_text(json.dumps(sample_rows()), encoding="utf-8")
            output_dir = Path(tmp) / "out"
            argv = [
                "analyze-tickets",
                "--input",
                str(input_path),
                "--output-dir",
                str(output_dir),
                "--k-max",
                "4",
                "--log-level",
                "WARNING",
            ]
            with mock.patch.object(sys, "argv", argv), mock.patch("builtins.print"):
                analyze_tickets.main()

            for name in ("keywords.json", "clusters.json", "anomalies.csv", "duplicates.csv", "forecast.csv", "report.md"):
                self.assertTrue((output_dir / name).exists(), name)

            keywords = json.loads((output_dir / "keywords.json").read_text(encoding="utf-8"))
            words = [kw["word"] for kw in keywords["keywords"]]
            self.assertNotIn("dupont", words)
            self.assertIn("cooccurrence", keywords)

            clusters = json.loads((output_dir / "clusters.json").read_text(encoding="utf-8"))
            self.assertTrue(clusters["available"])
            self.assertLessEqual(clusters["k_optimal"], 4)

            with (output_dir / "anomalies.csv").open(encoding="utf-8") as f:
                anomalies = list(csv.DictReader(f))
            self.assertEqual(anomalies[0]["record_id"], "8")

            with (output_dir / "forecast.csv").open(encoding="utf-8") as f:
                self.assertEqual(len(list(csv.DictReader(f))), 30)

            report = (output_dir / "report.md").read_text(encoding="utf-8")
            self.assertIn("# Ticket Mining Report", report)

    def test_missing_input_exits(self) -> None:
        argv = ["analyze-tickets", "--input", "/nonexistent/tickets.json"]
        with mock.patch.object(sys, "argv", argv):
            with self.assertRaises(SystemExit):
                analyze_tickets.main()


if __name__ == "__main__":
    unittest.main()
