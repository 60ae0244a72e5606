# src/atlas_delivery/core/__init__.py
"""
Core do Atlas Delivery.

Reúne as responsabilidades essenciais de planejamento, execução,
autorização e rastreabilidade de pipelines, independente dos serviços
externos concretos (consumidos via `integrations`).

Princípios fundamentais:
    - Nenhuma decisão silenciosa: todo comportamento é explícito e testado
    - Estado compartilhado sempre protegido e rastreável
    - Colaboradores externos entram apenas por contratos (Protocol)
"""
