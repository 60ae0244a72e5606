# src/atlas_delivery/core/config/hashing.py
"""
Hashing canônico do Atlas Delivery.

Dois fingerprints são registrados em todo histórico de execução:
    - config_hash     → identidade da configuração efetiva
    - definition_hash → identidade estrutural do pipeline (stages, actions,
      artefatos, roles e projetos de build)

Política de hashing (v1):
    - Serialização JSON canônica (sort_keys, separadores compactos, UTF-8)
    - SHA-256, string hexadecimal de 64 caracteres

Estruturas equivalentes produzem o mesmo hash independentemente da ordem
original das chaves. A ordem de stages e actions faz parte da identidade.
"""

import json
import hashlib
from typing import Any, Dict


def _canonical_sha256(data: Dict[str, Any]) -> str:
    canonical_json = json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera o hash determinístico da configuração efetiva.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )
    return _canonical_sha256(config)


def compute_definition_hash(definition: Any) -> str:
    """
    Gera o hash determinístico de uma definição de pipeline.

    Aceita qualquer objeto com `describe() -> dict` (PipelineDefinition,
    PipelinePlan) ou o próprio dict descritivo.
    """
    described = definition.describe() if hasattr(definition, "describe") else definition
    if not isinstance(described, dict):
        raise TypeError(
            f"Definição para hashing deve produzir dict, recebido: {type(described).__name__}"
        )
    return _canonical_sha256(described)
