"""
deploy/ — Orquestación del despliegue de posts.

Módulos:
- job_runner.py   → Ejecuta jobs async con concurrencia y timeout acotados
- orchestrator.py → create / update / publish / clipboard
- models.py       → Verbos y resultados
- hints.py        → Callbacks de progreso (no-op por defecto)
"""
