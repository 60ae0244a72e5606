# src/atlas_delivery/core/config/loader.py
"""
Loader canônico de configuração do Atlas Delivery.

A configuração efetiva é resolvida em camadas, da menor para a maior
precedência:
    1. DEFAULT_CONFIG (embutido no pacote)
    2. arquivo de configuração do pipeline (obrigatório quando informado)
    3. arquivo local de overrides (opcional, ignorado se ausente)

Responsabilidades do módulo:
    - Carregar arquivos de configuração em YAML ou JSON
    - Validar requisitos estruturais mínimos (tipo raiz)
    - Resolver a configuração final via deep-merge determinístico

Limites explícitos:
    - Não valida domínio dos valores (responsabilidade de EngineSettings)
    - Não persiste configuração ou hash
"""

from pathlib import Path
from typing import Any, Dict, Optional
import json

import yaml  # PyYAML

from .defaults import DEFAULT_CONFIG
from .merge import deep_merge
from .errors import (
    ConfigFileNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Carrega um arquivo de configuração e valida sua estrutura básica.

    Arquivos vazios são interpretados como dicionários vazios.

    Raises:
        ConfigFileNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise ConfigFileNotFoundError(f"Arquivo de configuração não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def resolve_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Aplica `overrides` sobre DEFAULT_CONFIG e retorna um novo dict."""
    if overrides is None:
        return deep_merge(DEFAULT_CONFIG, {})
    if not isinstance(overrides, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(overrides).__name__}"
        )
    return deep_merge(DEFAULT_CONFIG, overrides)


def load_config(
    *,
    config_path: str,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve a configuração efetiva do engine.

    Política de resolução:
        - DEFAULT_CONFIG é sempre a base
        - `config_path` é obrigatório e deve existir
        - `local_path` é opcional; quando o arquivo existe, tem prioridade

    Args:
        config_path (str): Caminho para o arquivo de configuração do pipeline.
        local_path (Optional[str]): Caminho opcional para overrides locais.

    Returns:
        Dict[str, Any]: Configuração final resolvida.

    Raises:
        ConfigFileNotFoundError: Se `config_path` não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo não for um dicionário.
        ConfigTypeConflictError: Se ocorrer conflito estrutural durante o merge.
    """
    effective = resolve_config(_load_file(Path(config_path)))

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))

    return effective
