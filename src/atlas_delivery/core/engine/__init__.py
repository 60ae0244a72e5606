# src/atlas_delivery/core/engine/__init__.py
"""
Engine do Atlas Delivery.

Componentes:
    - planner → validação estrutural da definição e agrupamento por run_order
    - stage   → fan-out paralelo de Actions com barreira de fan-in
    - engine  → máquina de estados, fila de execuções e histórico

Invariantes:
    - Stage i+1 nunca inicia antes de Stage i terminar com sucesso
    - No máximo uma execução RUNNING por pipeline
    - Cada Action executa no máximo uma vez por execução
"""
