# src/atlas_delivery/core/traceability/history.py
"""
Histórico de execução v1: rastreabilidade forense de execuções de pipeline.

Este módulo define a estrutura e as operações canônicas do histórico
persistido de uma execução: status de cada Stage e de cada Action,
indexados por execution id, nome do stage e nome da action, mais um
Event Log ordenado.

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - Toda mutação ocorre por chamadas explícitas da API
    - A ordem do Event Log reflete a ordem real de chamada
    - O histórico é serializável e reconstruível (round-trip JSON)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - Actions ficam aninhadas no Stage: `stages[stage]["actions"][action]`
    - O histórico não é thread-safe: o chamador (Engine/StageExecutor)
      serializa o acesso

Limites explícitos:
    - Não executa pipeline
    - Não decide políticas de execução
    - Não realiza migração de versões de schema
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


HISTORY_SCHEMA_VERSION = "1"


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """Normaliza um timestamp para timezone-aware em UTC (naive é assumido UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start_iso: Optional[str], end: datetime) -> int:
    if not start_iso:
        return 0
    try:
        start = datetime.fromisoformat(start_iso)
    except ValueError:
        return 0
    delta = _ensure_tzaware_utc(end) - _ensure_tzaware_utc(start)
    return max(0, int(delta.total_seconds() * 1000))


@dataclass
class ExecutionHistory:
    """
    Registro forense de uma execução de pipeline.

    Campos principais:
        - execution: metadados (execution_id, pipeline, trigger, status, state)
        - inputs: hashes da configuração e da definição do pipeline
        - stages: estado incremental de cada Stage e de suas Actions
        - events: Event Log ordenado
    """

    execution: Dict[str, Any]
    inputs: Dict[str, Any]
    stages: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def execution_id(self) -> str:
        return str(self.execution.get("execution_id"))

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot JSON-compatível; valores não serializáveis (datetime, bytes) viram `str`."""
        return json.loads(json.dumps(
            {
                "schema_version": HISTORY_SCHEMA_VERSION,
                "execution": self.execution,
                "inputs": self.inputs,
                "stages": self.stages,
                "events": self.events,
            },
            default=str,
        ))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionHistory":
        return cls(
            execution=dict(data.get("execution", {})),
            inputs=dict(data.get("inputs", {})),
            stages={k: dict(v) for k, v in (data.get("stages", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )

    def action_status(self, stage_name: str, action_name: str) -> Optional[str]:
        stage = self.stages.get(stage_name) or {}
        action = (stage.get("actions") or {}).get(action_name) or {}
        return action.get("status")


def create_history(
    *,
    execution_id: str,
    pipeline_name: str,
    trigger: str,
    started_at: datetime,
    atlas_version: str,
    config_hash: str,
    definition_hash: str,
) -> ExecutionHistory:
    """
    Cria o histórico inicial de uma execução.

    O Event Log inicia vazio: esta função **não** registra `execution_started`.
    """
    return ExecutionHistory(
        execution={
            "execution_id": execution_id,
            "pipeline_name": pipeline_name,
            "trigger": trigger,
            "status": "running",
            "state": None,
            "started_at": _iso(started_at),
            "atlas_version": atlas_version,
        },
        inputs={
            "config_hash": config_hash,
            "definition_hash": definition_hash,
        },
        stages={},
        events=[],
    )


def add_event(
    history: ExecutionHistory,
    *,
    event_type: str,
    ts: datetime,
    stage: Optional[str] = None,
    action: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """Adiciona exatamente um evento ao Event Log, na ordem de chamada."""
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if stage is not None:
        ev["stage"] = stage
    if action is not None:
        ev["action"] = action
    if payload is not None:
        ev["payload"] = payload
    history.events.append(ev)


def stage_started(history: ExecutionHistory, *, stage: str, position: int, ts: datetime) -> None:
    entry = history.stages.setdefault(stage, {"stage": stage, "actions": {}})
    entry.update({"position": position, "status": "running", "started_at": _iso(ts)})
    add_event(history, event_type="stage_started", ts=ts, stage=stage, payload={"position": position})


def stage_finished(
    history: ExecutionHistory,
    *,
    stage: str,
    ts: datetime,
    status: str,
    failed_actions: Optional[List[str]] = None,
) -> None:
    entry = history.stages.setdefault(stage, {"stage": stage, "actions": {}})
    failed = sorted(failed_actions or [])
    entry.update(
        {
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(entry.get("started_at"), ts),
            "failed_actions": failed,
        }
    )
    add_event(
        history,
        event_type="stage_finished",
        ts=ts,
        stage=stage,
        payload={"status": status, "failed_actions": failed},
    )


def action_started(history: ExecutionHistory, *, stage: str, action: str, kind: str, ts: datetime) -> None:
    entry = history.stages.setdefault(stage, {"stage": stage, "actions": {}})
    entry.setdefault("actions", {})[action] = {
        "action": action,
        "kind": kind,
        "status": "running",
        "started_at": _iso(ts),
    }
    add_event(history, event_type="action_started", ts=ts, stage=stage, action=action, payload={"kind": kind})


def action_finished(
    history: ExecutionHistory,
    *,
    stage: str,
    action: str,
    ts: datetime,
    result: Dict[str, Any],
) -> None:
    """Registra o status terminal de uma Action (succeeded ou failed)."""
    entry = history.stages.setdefault(stage, {"stage": stage, "actions": {}})
    a = entry.setdefault("actions", {}).setdefault(action, {"action": action})
    status = result.get("status", "succeeded")
    a.update(
        {
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(a.get("started_at"), ts),
            "summary": result.get("summary"),
            "output": result.get("output"),
            "error": result.get("error"),
            "metadata": result.get("metadata", {}) or {},
        }
    )
    event_type = "action_failed" if status == "failed" else "action_finished"
    payload: Dict[str, Any] = {"status": status, "duration_ms": a["duration_ms"]}
    if result.get("error") is not None:
        payload["error_type"] = result["error"].get("type")
    add_event(history, event_type=event_type, ts=ts, stage=stage, action=action, payload=payload)


def execution_finished(history: ExecutionHistory, *, status: str, state: str, ts: datetime) -> None:
    history.execution.update(
        {
            "status": status,
            "state": state,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(history.execution.get("started_at"), ts),
        }
    )
    add_event(history, event_type="execution_finished", ts=ts, payload={"status": status, "state": state})


def save_history(history: ExecutionHistory, path: Path) -> None:
    """Persiste o histórico em JSON determinístico (sort_keys, indentado)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(history.to_dict(), ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")


def load_history(path: Path) -> ExecutionHistory:
    """Restaura um histórico salvo por `save_history`."""
    data = json.loads(path.read_text(encoding="utf-8"))
    return ExecutionHistory.from_dict(data)
