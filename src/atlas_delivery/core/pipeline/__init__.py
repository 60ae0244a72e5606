# src/atlas_delivery/core/pipeline/__init__.py
"""
# Pipeline Core: Atlas Delivery

Contratos canônicos e estruturas que compõem um pipeline.

## Componentes

- **types**: `Artifact`, enums de status, `PipelineState`, `ActionResult`, `StageResult`
- **action**: `Action` (Protocol), contrato mínimo de toda Action
- **actions**: variantes `SourceAction`, `BuildAction`, `ApprovalAction`
- **project**: `BuildProject`, o que o serviço de build executa
- **definition**: `Stage` e `PipelineDefinition`
- **context**: `ExecutionContext`, contexto compartilhado por execução

## Princípios Fundamentais

- Actions **não conhecem** o Engine nem outros Stages
- A definição é montada uma vez e lida somente pelo Engine
- Artefatos trafegam apenas via slots write-once do contexto
"""
