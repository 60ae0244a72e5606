# src/atlas_delivery/core/traceability/__init__.py
"""
Pacote de rastreabilidade do Atlas Delivery: Histórico de execução v1.

API pública:
    - ExecutionHistory   → estrutura canônica do histórico
    - create_history     → criação explícita
    - add_event          → registro explícito no Event Log
    - stage_started / stage_finished
    - action_started / action_finished
    - execution_finished
    - save_history / load_history → persistência JSON (round-trip)

Nenhum evento é emitido implicitamente: o Engine chama a API a cada
transição de estado.
"""

from .history import (
    ExecutionHistory,
    create_history,
    add_event,
    stage_started,
    stage_finished,
    action_started,
    action_finished,
    execution_finished,
    save_history,
    load_history,
)

__all__ = [
    "ExecutionHistory",
    "create_history",
    "add_event",
    "stage_started",
    "stage_finished",
    "action_started",
    "action_finished",
    "execution_finished",
    "save_history",
    "load_history",
]
