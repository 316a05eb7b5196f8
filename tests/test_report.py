
from datetime import datetime, timedelta, timezone

from epi_core.compliance import evaluate
from epi_core.models import EvaluationResult, StatsAggregate
from epi_core.report import build_report, format_history, format_stats, format_summary_lines, status_line


def test_report_branches(det):
    empty = build_report(evaluate([], ["capacete"]))
    assert empty.level == "warning" and empty.title == "Atenção"
    assert empty.missing == ["capacete"]

    ok = build_report(evaluate([det(10)], ["capacete"]))
    assert ok.level == "success" and ok.title == "Conformidade Total"
    assert ok.total_detections == 1

    missing = build_report(evaluate([det(10)], ["capacete", "luvas"]))
    assert missing.title == "EPIs Faltando"
    assert "LUVAS" in missing.message
    assert missing.missing == ["luvas"]


def test_status_line(det):
    assert status_line(evaluate([], ["capacete"])) == "Nenhum EPI foi detectado."
    assert status_line(evaluate([det(10)], ["capacete", "luvas"])) == "Faltando 1 EPI(s) obrigatório(s)."


def test_summary_lines(det):
    lines = format_summary_lines(evaluate([det(10, 0.91), det(10, 0.5), det(0, 0.8)], ["capacete"]))
    assert lines[0] == "CAPACETE [OBRIGATÓRIO] confiança 91.0% | detecções 2"
    assert lines[1].startswith("PESSOA confiança 80.0%")


def test_stats_and_history_text():
    stats = StatsAggregate(total_evaluations=4, compliant_count=3, non_compliant_count=1)
    assert format_stats(stats)[-1] == "Taxa de Conformidade: 75.0%"

    assert format_history([]) == ["Nenhuma detecção registrada ainda."]
    t0 = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    history = [
        EvaluationResult(timestamp=t0 + timedelta(minutes=i), compliant=(i % 2 == 0),
                         detected_labels=["capacete"] * i)
        for i in range(12)
    ]
    lines = format_history(history, limit=10)
    assert len(lines) == 10
    assert "Detectados: 11" in lines[0]
    assert "Não Conforme" in lines[0]
