"""
publishing/ — Todo lo que sale de la máquina local.

Módulos:
- post_formatter.py  → Markdown local → body del issue (+ assets)
- issue_client.py    → API de issues de GitHub
- git_ops.py         → Primitivas Git (GitPython)
- asset_publisher.py → Commit + push transaccional de posts y assets
"""
