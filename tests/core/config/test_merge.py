# tests/core/config/test_merge.py
"""
Testes do deep-merge de configuração (deep_merge).

Os testes asseguram que:
- valores escalares são sobrescritos sem mutar os inputs
- dicionários aninhados são mesclados recursivamente
- listas são sobrescritas integralmente
- `None` e a troca int/float não são conflitos de tipo
- conflitos reais de tipo são rejeitados com o caminho da chave

Invariantes:
    - O merge é puramente funcional
    - Nenhum conflito de tipo é resolvido silenciosamente
"""

import pytest

try:
    from atlas_delivery.core.config.merge import deep_merge
    from atlas_delivery.core.config.errors import ConfigTypeConflictError
except Exception as e:  # noqa: BLE001
    deep_merge = None
    ConfigTypeConflictError = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """
    Garante que `deep_merge` e `ConfigTypeConflictError` estejam disponíveis.

    Falha imediatamente (sem fallback) quando o módulo de merge ou a
    exceção tipada não podem ser importados.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing config merge modules. Implement:\n"
            "- src/atlas_delivery/core/config/merge.py (deep_merge)\n"
            "- src/atlas_delivery/core/config/errors.py (ConfigTypeConflictError)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_merge_simple_override():
    """Override escalar substitui o valor e não muta os dicionários de entrada."""
    _require_imports()
    base = {"a": 1, "b": 2}
    override = {"b": 99}
    out = deep_merge(base, override)
    assert out == {"a": 1, "b": 99}
    assert base == {"a": 1, "b": 2}
    assert override == {"b": 99}


def test_merge_nested_dict():
    _require_imports()
    base = {"engine": {"max_parallel_actions": 4, "max_queued_executions": 16}}
    override = {"engine": {"max_parallel_actions": 2}}
    out = deep_merge(base, override)
    assert out == {"engine": {"max_parallel_actions": 2, "max_queued_executions": 16}}


def test_merge_list_override_total():
    """
    Listas não são mescladas elemento a elemento: o override é total.

    Invariantes:
        - Nenhum elemento da lista base é preservado implicitamente
    """
    _require_imports()
    base = {"approval": {"notify": ["ops@example.com", "qa@example.com"]}}
    override = {"approval": {"notify": ["ops@example.com"]}}
    out = deep_merge(base, override)
    assert out == {"approval": {"notify": ["ops@example.com"]}}


def test_merge_none_is_not_a_type_conflict():
    """
    `approval.timeout_seconds` nasce como None (espera indefinida) e pode
    receber um número; o caminho inverso também é aceito.
    """
    _require_imports()
    assert deep_merge({"approval": {"timeout_seconds": None}}, {"approval": {"timeout_seconds": 30}}) == {
        "approval": {"timeout_seconds": 30}
    }
    assert deep_merge({"approval": {"timeout_seconds": 30}}, {"approval": {"timeout_seconds": None}}) == {
        "approval": {"timeout_seconds": None}
    }


def test_merge_int_and_float_are_interchangeable():
    _require_imports()
    out = deep_merge({"source": {"poll_interval_seconds": 60.0}}, {"source": {"poll_interval_seconds": 5}})
    assert out["source"]["poll_interval_seconds"] == 5


def test_merge_type_conflict_raises_with_dotted_path():
    """
    Conflito de tipo é erro estrutural fatal e a mensagem indica a chave.

    Limites explícitos:
        - Não valida o texto completo da mensagem, apenas o caminho
    """
    _require_imports()
    with pytest.raises(ConfigTypeConflictError) as exc:
        deep_merge({"engine": {"max_parallel_actions": 4}}, {"engine": {"max_parallel_actions": "many"}})
    assert "engine.max_parallel_actions" in str(exc.value)


def test_merge_dict_vs_scalar_conflict():
    _require_imports()
    with pytest.raises(ConfigTypeConflictError):
        deep_merge({"engine": {"max_parallel_actions": 4}}, {"engine": "fast"})


def test_merge_bool_is_not_a_number():
    _require_imports()
    with pytest.raises(ConfigTypeConflictError):
        deep_merge({"engine": {"max_parallel_actions": 4}}, {"engine": {"max_parallel_actions": True}})
