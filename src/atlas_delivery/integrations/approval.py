# src/atlas_delivery/integrations/approval.py
"""
Canal de aprovação humana.

A ApprovalAction publica um pedido (`request`) e bloqueia em `wait` até
que um único sinal de aprovar/rejeitar chegue. Nenhum outro input é
aceito durante a execução.

`InMemoryApprovalChannel` implementa o canal com `threading.Condition`:
decisões podem ser enviadas de qualquer thread (operador, teste, webhook).
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Set, Tuple, runtime_checkable


@dataclass(frozen=True)
class ApprovalRequest:
    pipeline_name: str
    execution_id: str
    stage_name: str
    action_name: str
    notify: Tuple[str, ...] = ()
    message: Optional[str] = None

    @property
    def token(self) -> str:
        return f"{self.execution_id}:{self.stage_name}:{self.action_name}"


@dataclass(frozen=True)
class ApprovalDecision:
    approved: bool
    reviewer: Optional[str] = None
    comment: Optional[str] = None


@runtime_checkable
class ApprovalChannel(Protocol):
    def request(self, request: ApprovalRequest) -> str:
        ...

    def wait(self, token: str, timeout: Optional[float] = None) -> Optional[ApprovalDecision]:
        """Bloqueia até a decisão. `None` apenas se `timeout` expirar."""
        ...


class InMemoryApprovalChannel:
    """
    Canal de aprovação em memória.

    `auto_decision`, quando informado, decide todo pedido no momento em que
    é publicado (útil para execuções não interativas).
    """

    def __init__(self, auto_decision: Optional[ApprovalDecision] = None):
        self.auto_decision = auto_decision
        self._cond = threading.Condition()
        self._pending: Dict[str, ApprovalRequest] = {}
        self._decisions: Dict[str, ApprovalDecision] = {}
        self._expired: Set[str] = set()
        self.history: List[Tuple[ApprovalRequest, ApprovalDecision]] = []

    def request(self, request: ApprovalRequest) -> str:
        token = request.token
        with self._cond:
            self._expired.discard(token)
            self._pending[token] = request
            if self.auto_decision is not None:
                self._decide_locked(token, self.auto_decision)
            self._cond.notify_all()
        return token

    def pending(self) -> List[ApprovalRequest]:
        with self._cond:
            return [r for t, r in self._pending.items() if t not in self._decisions]

    def wait_for_request(self, timeout: float = 5.0) -> ApprovalRequest:
        """Bloqueia até existir um pedido sem decisão (auxiliar de operador/testes)."""
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                open_requests = [r for t, r in self._pending.items() if t not in self._decisions]
                if open_requests:
                    return open_requests[0]
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError("nenhum pedido de aprovação pendente")
                self._cond.wait(remaining)

    def approve(self, token: Optional[str] = None, *, reviewer: Optional[str] = None, comment: Optional[str] = None) -> None:
        self._decide(token, ApprovalDecision(approved=True, reviewer=reviewer, comment=comment))

    def reject(self, token: Optional[str] = None, *, reviewer: Optional[str] = None, comment: Optional[str] = None) -> None:
        self._decide(token, ApprovalDecision(approved=False, reviewer=reviewer, comment=comment))

    def _decide(self, token: Optional[str], decision: ApprovalDecision) -> None:
        with self._cond:
            if token is None:
                open_tokens = [t for t in self._pending if t not in self._decisions]
                if len(open_tokens) != 1:
                    raise ValueError(f"token ambíguo: {len(open_tokens)} pedidos pendentes")
                token = open_tokens[0]
            self._decide_locked(token, decision)
            self._cond.notify_all()

    def _decide_locked(self, token: str, decision: ApprovalDecision) -> None:
        if token in self._expired:
            raise ValueError(f"pedido '{token}' expirou sem decisão")
        if token not in self._pending:
            raise KeyError(token)
        if token in self._decisions:
            raise ValueError(f"pedido '{token}' já foi decidido")
        self._decisions[token] = decision
        self.history.append((self._pending[token], decision))

    def wait(self, token: str, timeout: Optional[float] = None) -> Optional[ApprovalDecision]:
        """
        Bloqueia até a decisão do pedido `token`.

        Se `timeout` expirar, o pedido é encerrado: deixa de constar em
        `pending()` e decisões posteriores para ele são recusadas.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while token not in self._decisions:
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._pending.pop(token, None)
                    self._expired.add(token)
                    return None
                self._cond.wait(remaining)
            self._pending.pop(token, None)
            return self._decisions.pop(token)
