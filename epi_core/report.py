"""
Turn evaluations, stats and history into the status text shown to the user.
"""
from __future__ import annotations
from typing import List, Sequence

from epi_core.models import Evaluation, EvaluationResult, StatsAggregate, StatusReport


def build_report(evaluation: Evaluation) -> StatusReport:
    res = evaluation.result
    if evaluation.nothing_detected:
        return StatusReport(
            level="warning",
            title="Atenção",
            message="Nenhum EPI foi detectado. Certifique-se de estar usando os equipamentos corretos.",
            missing=list(res.missing_labels),
            total_detections=0,
        )
    if not res.missing_labels:
        return StatusReport(
            level="success",
            title="Conformidade Total",
            message="Todos os EPIs obrigatórios foram detectados corretamente.",
            total_detections=res.total_detections,
        )
    return StatusReport(
        level="warning",
        title="EPIs Faltando",
        message=f"Faltando {len(res.missing_labels)} EPI(s) obrigatório(s): "
                + ", ".join(m.upper() for m in res.missing_labels),
        missing=list(res.missing_labels),
        total_detections=res.total_detections,
    )


def status_line(evaluation: Evaluation) -> str:
    """One-line status used by the live window and the CLI."""
    if evaluation.nothing_detected:
        return "Nenhum EPI foi detectado."
    if evaluation.result.compliant:
        return "Todos os EPIs obrigatórios foram detectados!"
    return f"Faltando {len(evaluation.result.missing_labels)} EPI(s) obrigatório(s)."


def format_summary_lines(evaluation: Evaluation) -> List[str]:
    lines = []
    for s in evaluation.summaries:
        badge = " [OBRIGATÓRIO]" if s.required else ""
        lines.append(
            f"{s.label.upper()}{badge} confiança {s.max_confidence * 100:.1f}% | detecções {s.count}"
        )
    return lines


def format_stats(stats: StatsAggregate) -> List[str]:
    return [
        f"Total de Análises: {stats.total_evaluations}",
        f"Conformes: {stats.compliant_count}",
        f"Não Conformes: {stats.non_compliant_count}",
        f"Taxa de Conformidade: {stats.compliance_rate:.1f}%",
    ]


def format_history(history: Sequence[EvaluationResult], limit: int = 10) -> List[str]:
    """Newest entries first, at most `limit` lines."""
    if not history:
        return ["Nenhuma detecção registrada ainda."]
    lines = []
    for entry in list(history)[-limit:][::-1]:
        ts = entry.timestamp.astimezone().strftime("%d/%m/%Y %H:%M:%S")
        status = "Conforme" if entry.compliant else "Não Conforme"
        lines.append(
            f"{ts} {status} | Detectados: {len(entry.detected_labels)} | Faltando: {len(entry.missing_labels)}"
        )
    return lines
