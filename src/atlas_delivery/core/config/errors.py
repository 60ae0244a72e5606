# src/atlas_delivery/core/config/errors.py
"""
Exceções canônicas da camada de configuração do Atlas Delivery.

As exceções aqui definidas representam **violações estruturais explícitas**
da configuração, detectadas antes de qualquer execução de pipeline.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção representa falha de Action ou de Stage
"""


class ConfigError(Exception):
    """
    Exceção base para erros relacionados à configuração do Atlas Delivery.

    Permite captura genérica de erros de configuração e distinção clara
    entre falhas estruturais (fatais, no startup) e falhas de execução
    (registradas no histórico).
    """


class ConfigFileNotFoundError(ConfigError):
    """
    Arquivo de configuração base não encontrado no caminho especificado.

    Limites explícitos:
        - Não tenta inferir ou criar o arquivo automaticamente
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Formato do arquivo de configuração não suportado pelo loader.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """Conteúdo raiz da configuração não é um dicionário (`dict`)."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"engine": {"max_parallel_actions": 4}}
        - override: {"engine": "fast"}

    `None` e a troca entre int/float não são considerados conflito.
    """


class InvalidConfigValueError(ConfigError):
    """Valor fora do domínio aceito por uma chave conhecida (ex.: paralelismo < 1)."""
