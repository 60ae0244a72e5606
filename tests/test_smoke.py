# tests/test_smoke.py
"""
Testes de sanidade estrutural (smoke tests) do Atlas Delivery.

Garantem apenas que o pacote é importável e que o pytest descobre e
executa testes. Não validam comportamento de Engine, Stages ou Actions.

Limites explícitos:
    - Não testar lógica de negócio
    - Não acumular asserts funcionais
"""


def test_smoke():
    """
    Sentinela mínima de integridade do repositório.

    Importa o pacote raiz e a topologia padrão; falhas aqui indicam
    problema estrutural (layout, ciclo de imports), não de domínio.
    """
    import atlas_delivery
    from atlas_delivery.builders import build_orchestrator_pipeline

    assert atlas_delivery.__version__
    assert callable(build_orchestrator_pipeline)
