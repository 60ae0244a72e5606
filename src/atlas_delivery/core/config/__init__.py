# src/atlas_delivery/core/config/__init__.py

"""
Camada de configuração do Atlas Delivery.

Este pacote contém as estruturas e utilitários responsáveis por carregar,
mesclar, validar e identificar a configuração de execução do engine de
pipelines.

A configuração no Atlas Delivery é:
    - declarativa (YAML ou JSON)
    - determinística
    - separada da definição do pipeline (stages e actions)

Responsabilidades do pacote:
    - defaults  → configuração canônica embutida (DEFAULT_CONFIG)
    - loader    → carregamento de arquivos (defaults + overrides locais)
    - merge     → deep-merge determinístico
    - settings  → visão tipada e validada (EngineSettings)
    - hashing   → fingerprint da configuração e da definição do pipeline

Limites explícitos:
    - Não define stages ou actions
    - Não executa pipeline
"""

from .defaults import DEFAULT_CONFIG
from .loader import load_config, resolve_config
from .settings import EngineSettings
from .hashing import compute_config_hash, compute_definition_hash

__all__ = [
    "DEFAULT_CONFIG",
    "load_config",
    "resolve_config",
    "EngineSettings",
    "compute_config_hash",
    "compute_definition_hash",
]
