# src/atlas_delivery/__init__.py
"""
Atlas Delivery: engine de orquestração de pipelines de entrega contínua.

Este pacote raiz define o namespace público do Atlas Delivery: um núcleo
de orquestração que conduz serviços externos de build, armazenamento de
artefatos, identidade e aprovação humana através de Stages ordenados.

Princípios centrais:
    - O pipeline é uma sequência explícita de Stages, fixada pelo autor
    - No máximo uma execução em andamento por pipeline
    - Falhas são explícitas, serializáveis e nunca repetidas além da Action
    - Rastreabilidade forense é um requisito de primeira classe

Arquitetura em alto nível:
    - core.config       → carregamento, merge, validação e hashing de configuração
    - core.artifacts    → artifact store, slots write-once e retry
    - core.pipeline     → tipos, Actions, Stages e contexto de execução
    - core.engine       → planner, executor de Stage e máquina de estados
    - core.source       → polling de source e re-disparo
    - core.iam          → roles, policies e autorização (fail closed)
    - core.control      → StartPipelineExecution / GetPipelineExecution
    - core.traceability → histórico de execução e Event Log
    - builders          → topologia padrão do pipeline orquestrador

Limites explícitos:
    - Não executa builds (delegado ao serviço de build)
    - Não emite credenciais
    - Não possui UI
"""

__version__ = "0.1.0"
